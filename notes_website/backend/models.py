from typing import Dict, List, Optional, Union
from pydantic import BaseModel

class UserCreds(BaseModel):
    username: str
    password: str

class NoteData(BaseModel):
    title: str = ""
    content: str = ""

class UserResponse(BaseModel):
    success: bool
    user: Dict[str, Union[int, str]]
    message: str = ""

class NoteResponse(BaseModel):
    success: bool
    index: Optional[int] = None
    note: Optional[Dict[str, str]] = None
    message: str = ""

class NotesListResponse(BaseModel):
    success: bool
    notes: List[Dict[str, str]]
    count: int

class MessageResponse(BaseModel):
    success: bool
    message: str
