from .base import ConfigStorage
from .direct import DirectConfigStorage
from .stage_aware import StageAwareConfigStorage

__all__ = ["ConfigStorage", "DirectConfigStorage", "StageAwareConfigStorage"]
