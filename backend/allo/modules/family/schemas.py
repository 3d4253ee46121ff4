from datetime import datetime

from pydantic import BaseModel, Field


class MemberCreate(BaseModel):
    Name: str = Field(..., min_length=1, max_length=120)
    Role: str = Field(..., max_length=20)
    Email: str | None = Field(default=None, max_length=254)
    Password: str | None = Field(default=None, max_length=200)
    AllowanceAmount: int | None = Field(default=None, ge=0)
    AllowanceSchedule: str | None = Field(default=None, max_length=3)


class MemberOut(BaseModel):
    Id: str
    FamilyId: str
    Role: str
    Name: str
    Email: str | None = None


class FamilyRegister(BaseModel):
    FamilyName: str = Field(..., min_length=1, max_length=120)
    Name: str = Field(..., min_length=1, max_length=120)
    Email: str = Field(..., min_length=3, max_length=254)
    Password: str = Field(..., min_length=1, max_length=200)


class FamilyOut(BaseModel):
    Id: str
    Name: str


class FamilyRegisterOut(BaseModel):
    Family: FamilyOut
    User: MemberOut


class AllowanceUpdate(BaseModel):
    Amount: int | None = Field(default=None, ge=0)
    Schedule: str | None = Field(default=None, max_length=3)


class AllowanceOut(BaseModel):
    Id: str
    UserId: str
    Amount: int
    Schedule: str


class MemberDetailOut(BaseModel):
    User: MemberOut
    Allowance: AllowanceOut | None = None


class RequestCreate(BaseModel):
    Name: str = Field(..., min_length=1, max_length=200)
    Description: str = Field(default="", max_length=4000)
    Amount: int = Field(..., gt=0)
    Url: str | None = Field(default=None, max_length=2000)


class RequestGrant(BaseModel):
    Cost: int | None = Field(default=None, ge=0)


class RequestOut(BaseModel):
    Id: int
    UserId: str
    Name: str
    Description: str
    Amount: int
    Url: str | None = None
    Time: datetime


class TransactionOut(BaseModel):
    Id: int
    UserId: str
    TransactionType: str
    Description: str
    Amount: int
    Time: datetime


class TransactionCreate(BaseModel):
    TransactionType: str = Field(default="gift", max_length=20)
    Description: str = Field(default="", max_length=4000)
    Amount: int
