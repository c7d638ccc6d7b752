from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


class SendMailRequest(BaseModel):
    """bcc may be a list or one comma-separated string; recipients and body are accepted as aliases."""

    bcc: List[str] = Field(default_factory=list, validation_alias=AliasChoices("bcc", "recipients"))
    subject: str = ""
    text: str = Field("", validation_alias=AliasChoices("text", "body"))

    @field_validator("bcc", mode="before")
    @classmethod
    def split_recipients(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        elif not isinstance(v, (list, tuple)):
            raise ValueError("Recipients must be a string or a list of strings")
        return [str(item).strip() for item in v if item is not None and str(item).strip()]

    @field_validator("subject", "text", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> str:
        return "" if v is None else v


class SendResult(BaseModel):
    recipient: str
    status: str
    info: Optional[str] = None


class SendMailResponse(BaseModel):
    ok: bool
    count: int
    results: List[SendResult]
