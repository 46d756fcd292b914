from pydantic import BaseModel


class UserResponse(BaseModel):
    id: int
    external_id: str
    name: str
    email: str

    class Config:
        from_attributes = True


class OAuthProfile(BaseModel):
    """Identity returned by the OAuth provider's userinfo endpoint."""
    external_id: str
    name: str
    email: str
