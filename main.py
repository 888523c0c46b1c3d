#!/usr/bin/env python3
"""
Tab Shelf - Interactive Console

Starts the shelf service against a browser (or the in-memory tab host) and
lets you drive every command from a menu.
"""

import os
import sys
from InquirerPy import inquirer
from InquirerPy.base.control import Choice
from rich import print as rprint
from rich.table import Table

from browser_provider import HostConfig
from shelf_config import ShelfConfig, StorageConfig, DebugConfig
from shelf_service import ShelfService
from tab_management.triggers import QUICK_CAPTURE_COMMAND

debug_mode = os.getenv("TABSHELF_DEBUG", "").lower() in ("1", "true", "yes")


def build_config() -> ShelfConfig:
    """Ask which browser to drive and where to keep the shelf"""
    host_type = inquirer.select(
        message="Which browser should the shelf manage?",
        choices=[
            Choice(value="playwright", name="Chromium (Playwright)"),
            Choice(value="memory", name="Simulated tabs (no browser)"),
        ],
        default="playwright",
    ).execute()

    path = inquirer.text(
        message="Where should the shelf be stored?",
        default=StorageConfig().path,
    ).execute()

    return ShelfConfig(
        storage=StorageConfig(backend="file", path=path or StorageConfig().path),
        browser=HostConfig(provider_type=host_type, headless=False),
        logging=DebugConfig(debug_mode=debug_mode),
    )


def show_response(response):
    if response is None:
        rprint("[yellow]Command ignored[/yellow]")
    elif response.get("ok"):
        rprint("[green]✅ Done[/green]")
        if debug_mode:
            rprint(response.get("result"))
    else:
        rprint(f"[red]❌ {response.get('message')}[/red]")


def show_shelf(service: ShelfService):
    response = service.send({"type": "getData"})
    if not response or not response.get("ok"):
        show_response(response)
        return

    data = response["result"]
    for group in data["groups"]:
        flags = " [dim](persistent)[/dim]" if group.get("persistent") else ""
        table = Table(title=f"{group['name']}{flags}", title_justify="left", show_lines=False)
        table.add_column("#", style="dim", width=3)
        table.add_column("Title")
        table.add_column("URL", style="cyan", overflow="fold")
        for index, tab in enumerate(group["tabs"], start=1):
            table.add_row(str(index), tab.get("customTitle") or tab.get("title") or "", tab.get("url", ""))
        rprint(table)

    settings = data["settings"]
    rprint(f"[dim]theme={settings.get('theme')} viewMode={settings.get('viewMode')} "
           f"showBrowsingTabs={settings.get('showBrowsingTabs')}[/dim]\n")


def pick_group(service: ShelfService, message: str, include_live: bool = False):
    response = service.send({"type": "getData"})
    if not response or not response.get("ok"):
        show_response(response)
        return None
    groups = [g for g in response["result"]["groups"] if include_live or g.get("type") != "browsing"]
    if not groups:
        rprint("[yellow]No groups[/yellow]")
        return None
    return inquirer.select(
        message=message,
        choices=[Choice(value=g, name=f"{g['name']} ({len(g['tabs'])} tabs)") for g in groups],
    ).execute()


def pick_tab(group, message: str):
    if not group or not group["tabs"]:
        rprint("[yellow]That group has no tabs[/yellow]")
        return None
    return inquirer.select(
        message=message,
        choices=[Choice(value=t, name=t.get("customTitle") or t.get("title") or t["url"]) for t in group["tabs"]],
    ).execute()


def open_url(service: ShelfService):
    url = inquirer.text(message="URL to open").execute()
    if not url:
        return
    if "://" not in url:
        url = "https://" + url
    service.host.create_tab(url, active=True)
    service.pump()


def move_tab(service: ShelfService):
    source = pick_group(service, "Move from which group?")
    tab = pick_tab(source, "Which tab?")
    if not tab:
        return
    destination = pick_group(service, "Move to which group?")
    if not destination:
        return
    message = {"type": "moveTab", "fromGroupId": source["id"], "toGroupId": destination["id"], "tabId": tab["id"]}
    target = None
    if destination["tabs"]:
        target = inquirer.select(
            message="Drop next to which tab?",
            choices=[Choice(value=None, name="At the end")] + [
                Choice(value=t, name=t.get("customTitle") or t.get("title") or t["url"]) for t in destination["tabs"]
            ],
        ).execute()
    if target:
        message["targetTabId"] = target["id"]
        message["insertAfter"] = inquirer.confirm(message="Insert after it?", default=False).execute()
    show_response(service.send(message))


def edit_settings(service: ShelfService):
    current = service.settings_cache.get()
    theme = inquirer.select(
        message="Theme",
        choices=["dark", "light", "system"],
        default=current.get("theme"),
    ).execute()
    view_mode = inquirer.select(
        message="Open the panel as",
        choices=[Choice(value="side", name="Side panel"), Choice(value="tab", name="Tab")],
        default=current.get("viewMode"),
    ).execute()
    show_browsing = inquirer.confirm(
        message="Show the 'Currently Browsing' group?",
        default=bool(current.get("showBrowsingTabs")),
    ).execute()
    show_response(service.send({
        "type": "setSettings",
        "settings": {"theme": theme, "viewMode": view_mode, "showBrowsingTabs": show_browsing},
    }))


def run_menu(service: ShelfService):
    choices = [
        Choice(value="show", name="Show shelf"),
        Choice(value="open", name="Open a URL in the browser"),
        Choice(value="capture", name="Shelve all tabs of the current window"),
        Choice(value="quick", name="Quick-capture the active tab"),
        Choice(value="restore_tab", name="Restore a tab"),
        Choice(value="restore_group", name="Restore a whole group"),
        Choice(value="add", name="Add a group"),
        Choice(value="rename", name="Rename a group"),
        Choice(value="persist", name="Toggle group persistence"),
        Choice(value="move", name="Move a tab"),
        Choice(value="remove_tab", name="Delete a tab"),
        Choice(value="clear", name="Clear a group"),
        Choice(value="remove_group", name="Delete a group"),
        Choice(value="icon", name="Click the toolbar icon"),
        Choice(value="settings", name="Settings"),
        Choice(value="exit", name="Exit"),
    ]

    while True:
        service.pump()
        choice = inquirer.select(message="What would you like to do?", choices=choices, default="show").execute()

        if choice == "show":
            show_shelf(service)
        elif choice == "open":
            open_url(service)
        elif choice == "capture":
            show_response(service.send({"type": "captureWindow"}))
        elif choice == "quick":
            service.shortcut(QUICK_CAPTURE_COMMAND)
        elif choice == "restore_tab":
            group = pick_group(service, "Restore from which group?", include_live=True)
            tab = pick_tab(group, "Which tab?")
            if tab:
                show_response(service.send({"type": "restoreTab", "groupId": group["id"], "tabId": tab["id"]}))
        elif choice == "restore_group":
            group = pick_group(service, "Restore which group?")
            if group:
                show_response(service.send({"type": "restoreGroup", "groupId": group["id"]}))
        elif choice == "add":
            name = inquirer.text(message="Group name", default="New Group").execute()
            show_response(service.send({"type": "addGroup", "name": name}))
        elif choice == "rename":
            group = pick_group(service, "Rename which group?")
            if group:
                name = inquirer.text(message="New name", default=group["name"]).execute()
                show_response(service.send({"type": "renameGroup", "groupId": group["id"], "name": name}))
        elif choice == "persist":
            group = pick_group(service, "Which group?")
            if group:
                show_response(service.send({
                    "type": "setGroupPersistent",
                    "groupId": group["id"],
                    "persistent": not group["persistent"],
                }))
        elif choice == "move":
            move_tab(service)
        elif choice == "remove_tab":
            group = pick_group(service, "Delete from which group?")
            tab = pick_tab(group, "Which tab?")
            if tab:
                show_response(service.send({"type": "removeTab", "groupId": group["id"], "tabId": tab["id"]}))
        elif choice == "clear":
            group = pick_group(service, "Clear which group?")
            if group and inquirer.confirm(message=f"Remove every tab from '{group['name']}'?", default=False).execute():
                show_response(service.send({"type": "clearGroup", "groupId": group["id"]}))
        elif choice == "remove_group":
            group = pick_group(service, "Delete which group?")
            if group and inquirer.confirm(message=f"Delete '{group['name']}'?", default=False).execute():
                show_response(service.send({"type": "removeGroup", "groupId": group["id"]}))
        elif choice == "icon":
            service.click_icon()
        elif choice == "settings":
            edit_settings(service)
        elif choice == "exit":
            print("👋 Goodbye!\n")
            return


def main():
    """Main function"""
    rprint("[bold]Tab Shelf\n")
    config = build_config()

    try:
        service = ShelfService(config=config).start()
    except Exception as e:
        rprint(f"[red]❌ Could not start: {e}[/red]")
        sys.exit(1)

    if debug_mode:
        service.subscribe(lambda message: rprint(f"[dim]📣 {message['type']}[/dim]"))
    try:
        run_menu(service)
    finally:
        service.close()


if __name__ == '__main__':
    main()
