from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    Email: str = Field(..., max_length=254)
    Password: str = Field(..., max_length=200)


class ChangePasswordRequest(BaseModel):
    CurrentPassword: str = Field(..., max_length=200)
    NewPassword: str = Field(..., max_length=200)


class SessionResponse(BaseModel):
    AccessToken: str
    TokenType: str = "bearer"
    ExpiresIn: int
    UserId: str
    FamilyId: str
    Role: str
    Name: str


class SessionUserOut(BaseModel):
    UserId: str
    FamilyId: str
    Role: str
    Name: str
