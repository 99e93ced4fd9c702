from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class PhotoListItem(BaseModel):
    index: int
    filename: str
    has_title: bool
    has_description: bool
    fixed_theme: str


class PhotoListResponse(BaseModel):
    photos: list[PhotoListItem]
    total: int
    total_input_tokens: int
    total_output_tokens: int
    estimated_cost_eur: float


class PhotoResponse(BaseModel):
    filename: str
    title: str = ""
    description: str = ""
    transcription: str = ""
    theme: str = ""
    fixed_theme: str = ""
    has_audio: bool = False
    input_tokens: int = 0
    output_tokens: int = 0
    estimated_cost_eur: float = 0.0


class MetadataUpdateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    transcription: str | None = None
    theme: str | None = None
    fixed_theme: str | None = None


class AudioResponse(BaseModel):
    audio_key: str


class GenerateRequest(BaseModel):
    filename: str = Field(min_length=1)
    transcription: str = Field(min_length=1)


class GenerateResponse(BaseModel):
    title: str
    description: str
    transcription: str
    input_tokens: int
    output_tokens: int
    estimated_cost_eur: float


class ThemeAssignRequest(BaseModel):
    # Range is checked by the partitioner so the error shape matches the core
    num_themes: int


class ThemeAssignResponse(BaseModel):
    themes: list[str]
    assignments: dict[str, str]
    input_tokens: int
    output_tokens: int


class SettingsResponse(BaseModel):
    title_min_chars: int
    title_max_chars: int
    desc_min_chars: int
    desc_max_chars: int
    instructions: str
    photographer_url: str
    themes: list[str]
    fixed_themes: list[str]


class SettingsUpdateRequest(BaseModel):
    title_min_chars: int | None = Field(default=None, gt=0)
    title_max_chars: int | None = Field(default=None, gt=0)
    desc_min_chars: int | None = Field(default=None, gt=0)
    desc_max_chars: int | None = Field(default=None, gt=0)
    instructions: str | None = None
    photographer_url: str | None = None
    themes: list[str] | None = None
    fixed_themes: list[str] | None = None


class ReferenceDocumentResponse(BaseModel):
    id: int
    original_filename: str
    stored_filename: str


class ReferenceDocumentListResponse(BaseModel):
    pdfs: list[ReferenceDocumentResponse]
