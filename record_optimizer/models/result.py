# =============================================================================
# Result Model
# =============================================================================
# Value object produced by applying one rule to one field of one record.
# =============================================================================

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["Result"]


class Result(BaseModel):
    """
    Outcome of a single rule application.

    Consumed immediately by the executor and never persisted.

    Attributes:
        key: Field name to write (differs from the input field when renamed)
        value: Transformed value
        removed_key: Field to delete from the record afterwards, if any
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str = Field(..., description="Output field name")
    value: Any = Field(None, description="Transformed value")
    removed_key: Optional[str] = Field(None, description="Field to remove after writing")

    @property
    def key_value(self) -> Dict[str, Any]:
        return {self.key: self.value}
