from pydantic import BaseModel, Field


class CreateSessionRequest(BaseModel):
    class_id: int
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class ManualAddRequest(BaseModel):
    school_id: str = Field(min_length=1)


class SettingsUpdate(BaseModel):
    qr_session_duration: int
