from pydantic import BaseModel, Field


class AttendanceRequest(BaseModel):
    session_id: str
    token: str
    school_id: str = Field(min_length=1)
    signature: str = Field(min_length=1)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class ScanRequest(BaseModel):
    qr_data: str
