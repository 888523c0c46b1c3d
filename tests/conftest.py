"""
Shared pytest fixtures for all tests.
"""
import pytest

from browser_provider import MemoryTabHost
from shelf_config import ShelfConfig
from shelf_service import ShelfService
from tab_management.dispatcher import CommandDispatcher
from tab_management.message_bus import MessageBus
from tab_management.settings_cache import SettingsCache
from tab_management.shelf_store import MemoryBackend, ShelfStore
from tab_management.tab_manager import ShelfManager
from utils.event_logger import EventLogger, set_event_logger


@pytest.fixture(autouse=True)
def event_logger():
    """Fresh, quiet global event logger for every test"""
    logger = EventLogger(debug_mode=False)
    set_event_logger(logger)
    yield logger
    set_event_logger(EventLogger(debug_mode=False))


@pytest.fixture
def host():
    """In-memory tab host with one focused, empty window"""
    host = MemoryTabHost()
    host.open_window()
    return host


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    return ShelfStore(backend)


@pytest.fixture
def writes(backend):
    """Every change set written to the backend, in order"""
    recorded = []
    backend.on_change(recorded.append)
    return recorded


@pytest.fixture
def settings_cache(store):
    return SettingsCache().initialize(store)


@pytest.fixture
def manager(store, host, settings_cache):
    return ShelfManager(store, host, settings_cache)


@pytest.fixture
def bus():
    return MessageBus()


@pytest.fixture
def broadcasts(bus):
    """Messages broadcast on the bus, in order"""
    received = []
    bus.subscribe(received.append)
    return received


@pytest.fixture
def dispatcher(manager, bus):
    return CommandDispatcher(manager, bus)


@pytest.fixture
def service(host, backend):
    service = ShelfService(ShelfConfig.memory(), host=host, backend=backend).start()
    yield service
    service.close()
