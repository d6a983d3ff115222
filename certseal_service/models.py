from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional

class IssueRequest(BaseModel):
    # Field rules are enforced by the issuance pipeline, not here
    subject_name: Optional[str] = None
    course_or_exam_name: Optional[str] = None

class DocumentVerifyRequest(BaseModel):
    """
    Embedded document metadata, as produced at issuance.

    Values are left untyped: a mistyped field is a verification outcome,
    classified by the engine, not a malformed request.
    """
    model_config = ConfigDict(populate_by_name=True)

    certificate_id: Any = Field(None, alias="certificateId")
    digest: Any = None
    claim_fields: Any = Field(None, alias="claimFields")

    def to_metadata(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

class TextVerifyRequest(BaseModel):
    text: Any = None
