"""X11 backend (xdotool)."""

from __future__ import annotations

import shutil
from typing import Optional

from desktop import run_command
from models import AppIdentity


class X11Desktop:
    name = "x11"
    settle_delay_s = 0.2

    def query_foreground(self) -> Optional[AppIdentity]:
        window_id = run_command(["xdotool", "getactivewindow"])
        if not window_id:
            return None
        handle = int(window_id)
        try:
            pid = int(run_command(["xdotool", "getwindowpid", window_id]))
        except (RuntimeError, ValueError):
            pid = 0
        name = run_command(["xdotool", "getwindowname", window_id])
        return AppIdentity(name=name, pid=pid, handle=handle)

    def set_frontmost(self, app: AppIdentity) -> None:
        if app.handle:
            run_command(["xdotool", "windowactivate", "--sync", str(app.handle)])
        elif app.pid:
            run_command(["xdotool", "search", "--pid", str(app.pid), "windowactivate", "--sync"])
        else:
            raise RuntimeError(f"cannot address {app} without a window or pid")

    def send_paste(self) -> None:
        run_command(["xdotool", "key", "--clearmodifiers", "ctrl+v"])

    def is_available(self) -> bool:
        return shutil.which("xdotool") is not None
