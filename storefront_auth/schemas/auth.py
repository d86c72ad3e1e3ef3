from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SendCodeRequest(BaseModel):
    # Left unconstrained so malformed input reaches the phone/code checks and
    # comes back as InvalidPhone/InvalidInput rather than a 422.
    phone: Optional[Union[str, int]] = None


class SendCodeResponse(CamelModel):
    ok: bool = True
    message: str
    phone: str
    expires_in_seconds: Optional[int] = None
    debug_code: Optional[str] = None


class VerifyCodeRequest(BaseModel):
    phone: Optional[Union[str, int]] = None
    code: Optional[Union[str, int]] = None


class UserPayload(CamelModel):
    id: int
    phone: str
    name: str
    is_admin: bool
    profile_complete: bool


class VerifyCodeResponse(CamelModel):
    ok: bool = True
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserPayload


class SessionResponse(CamelModel):
    ok: bool = True
    user: UserPayload
