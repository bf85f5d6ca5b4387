"""Direct Line executor module."""

from bot_testing.executors.directline.config import DirectLineConfig
from bot_testing.executors.directline.executor import DirectLineExecutor
from bot_testing.executors.directline.manifest import directline_manifest

__all__ = ["DirectLineConfig", "DirectLineExecutor", "directline_manifest"]
