"""Direct Line executor manifest."""

from bot_testing.executors.directline.config import DirectLineConfig
from bot_testing.executors.directline.executor import DirectLineExecutor
from bot_testing.executors.manifest import ExecutorManifest

directline_manifest = ExecutorManifest(
    config_cls=DirectLineConfig,
    executor_factory=DirectLineExecutor.from_config,
)
