"""Tana Intermediate File models.

Field names are snake_case in Python and serialised camelCase, which is what
Tana's importer expects (``mediaUrl``, ``leafNodes``, ...).
"""

import json
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TANA_FORMAT_VERSION = "TanaIntermediateFile V0.1"


class _TanaModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImageNode(_TanaModel):
    type: Literal["image"] = "image"
    uid: str
    name: str
    media_url: str


class Node(_TanaModel):
    type: Literal["node"] = "node"
    uid: str
    name: str
    children: List[Union["Node", ImageNode]] = Field(default_factory=list)
    refs: List[str] = Field(default_factory=list)
    supertags: Optional[List[str]] = None


AnyNode = Union[Node, ImageNode]


class Summary(_TanaModel):
    leaf_nodes: int
    top_level_nodes: int
    total_nodes: int
    field_count: int = Field(default=0, alias="fields")
    calendar_nodes: int = 0
    broken_refs: int = 0


class Supertag(_TanaModel):
    uid: str
    name: str


class Document(_TanaModel):
    version: str = TANA_FORMAT_VERSION
    summary: Summary
    supertags: List[Supertag]
    nodes: List[Node]

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Serialise the document the way it is persisted (UTF-8, 2-space indent)."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)
