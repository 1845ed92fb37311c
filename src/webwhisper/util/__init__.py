import os
from pathlib import Path

from webwhisper.util.concurrency import KeyedLock, run_with_timeout
from webwhisper.util.yaml import load_yaml_config

PROJECT_ROOT = Path(os.environ.get("WEBWHISPER_ROOT", Path.cwd()))

__all__ = ["PROJECT_ROOT", "KeyedLock", "load_yaml_config", "run_with_timeout"]
