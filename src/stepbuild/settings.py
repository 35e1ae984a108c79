from __future__ import annotations
import os

WORK_ROOT = os.environ.get("STEPBUILD_WORK_ROOT", ".stepbuild/work")
TARGETS_FILE = os.environ.get("STEPBUILD_TARGETS_FILE") or None
SPINNER = os.environ.get("STEPBUILD_SPINNER", "1") not in ("0", "false", "no")
