from typing import Literal, Optional, Union
from pydantic import BaseModel


class StructuredContentRef(BaseModel):
    """A CMS reference object, e.g. ``{"contentKey": "MCX..."}``."""

    kind: Literal["structured"] = "structured"
    content_key: Optional[str] = None
    id: Optional[str] = None


class RawContentRef(BaseModel):
    """A bare string that is used as the content key itself."""

    kind: Literal["raw"] = "raw"
    value: str


class AbsentContentRef(BaseModel):
    kind: Literal["absent"] = "absent"


ContentRef = Union[StructuredContentRef, RawContentRef, AbsentContentRef]
