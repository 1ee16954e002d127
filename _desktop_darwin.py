"""macOS backend (osascript + System Events)."""

from __future__ import annotations

import shutil
from typing import Optional

from desktop import run_command, send_paste_keystroke
from models import AppIdentity

try:
    from pynput.keyboard import Key
except Exception:  # pragma: no cover
    Key = None  # type: ignore


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def parse_frontmost(output: str) -> Optional[AppIdentity]:
    """Parse ``"Notes, 1234"`` as printed by System Events."""
    if not output:
        return None
    name, _, pid = output.rpartition(",")
    if not name:
        return AppIdentity(name=output.strip())
    try:
        return AppIdentity(name=name.strip(), pid=int(pid.strip()))
    except ValueError:
        return AppIdentity(name=output.strip())


class DarwinDesktop:
    name = "darwin"
    settle_delay_s = 0.15

    def query_foreground(self) -> Optional[AppIdentity]:
        script = (
            'tell application "System Events" to get {name, unix id} '
            "of first application process whose frontmost is true"
        )
        return parse_frontmost(run_command(["osascript", "-e", script]))

    def set_frontmost(self, app: AppIdentity) -> None:
        # "set frontmost" keeps the target's windows and selection untouched,
        # unlike "activate" which may reopen or reset them.
        if app.pid:
            selector = f"first application process whose unix id is {app.pid}"
        else:
            selector = f"application process {_quote(app.name)}"
        script = f'tell application "System Events" to set frontmost of {selector} to true'
        run_command(["osascript", "-e", script])

    def send_paste(self) -> None:
        send_paste_keystroke(Key.cmd if Key is not None else None)

    def is_available(self) -> bool:
        return shutil.which("osascript") is not None
