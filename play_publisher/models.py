from __future__ import annotations
"""
Android Publisher API wire models.
JSON keys are camelCase on the wire, snake_case in Python.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PlayModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class AppEdit(PlayModel):
    id: str
    expiry_time_seconds: str


class Release(PlayModel):
    name: Optional[str] = None
    version_codes: Optional[List[str]] = None
    status: Optional[str] = None


class Track(PlayModel):
    track: Optional[str] = None
    releases: Optional[List[Release]] = None


class Bundle(PlayModel):
    version_code: Optional[int] = None
    sha1: Optional[str] = None
    sha256: Optional[str] = None
