from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class PatternObserverConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    # False keeps the lifetime streak; True resets other entries on a switch.
    reset_streak_on_switch: bool = False


class ObserversConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    pattern: PatternObserverConfig = PatternObserverConfig()
    disabled: List[str] = []


class MulticompConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    workspace_path: Optional[str] = None
    minimal_prompt: bool = False
    observers: ObserversConfig = ObserversConfig()
