from __future__ import annotations

import shlex
import shutil
import subprocess
import sys
import threading
from pathlib import Path

from .logging_utils import debug_log

VIEWER_PRESET_LIST = ("feh", "imv", "sxiv", "gio", "xdg-open")
# These hand the file to another process and return at once.
DETACHING_LAUNCHERS = {"xdg-open", "gio", "open"}


def find_image_viewer(preferred: str | None = None) -> list[str] | None:
    """Return the command used to open images, or ``None`` when nothing fits."""
    if preferred:
        command = shlex.split(preferred)
        if command and shutil.which(command[0]) is not None:
            return command
        debug_log(f"configured image viewer not found: {preferred}")
    if sys.platform == "darwin":
        return ["open"]
    for name in VIEWER_PRESET_LIST:
        if shutil.which(name) is not None:
            return [name, "open"] if name == "gio" else [name]
    return None


def _run_viewer(command: list[str], image: Path, cleanup: bool) -> None:
    try:
        subprocess.run(
            [*command, str(image)],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as exc:
        debug_log(f"image viewer failed: {exc}")
    finally:
        if cleanup and Path(command[0]).name not in DETACHING_LAUNCHERS:
            try:
                image.unlink()
            except OSError as exc:
                debug_log(f"unable to remove {image}: {exc}")


def open_image(image: Path, command: list[str], *, cleanup: bool = True) -> threading.Thread:
    """Open ``image`` in the viewer on a daemon thread and return that thread.

    The temporary file is removed once the viewer exits when ``cleanup`` is set.
    """
    thread = threading.Thread(
        target=_run_viewer,
        args=(command, image, cleanup),
        name="termbook-viewer",
        daemon=True,
    )
    thread.start()
    debug_log(f"opening {image} with {' '.join(command)}")
    return thread
