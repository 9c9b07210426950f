"""
Pydantic schemas for HR roster entries.
"""
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict


class RosterCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(default="", max_length=200)
    team: str = Field(default="", max_length=200)
    department: str = Field(default="", max_length=200)
    position: str = Field(default="", max_length=200)
    branch: str = Field(default="", max_length=200)
    shift: str = Field(default="", max_length=50)
    employee_code: str = Field(default="", max_length=50)


class RosterUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=200)
    team: Optional[str] = Field(None, max_length=200)
    department: Optional[str] = Field(None, max_length=200)
    position: Optional[str] = Field(None, max_length=200)
    branch: Optional[str] = Field(None, max_length=200)
    shift: Optional[str] = Field(None, max_length=50)
    employee_code: Optional[str] = Field(None, max_length=50)


class RosterRead(RosterCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


class RosterOptions(BaseModel):
    teams: List[str]
    departments: List[str]
    positions: List[str]
