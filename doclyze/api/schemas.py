from pydantic import BaseModel, Field

from doclyze.domain.models import TranscriptRole, TranscriptTurn


class ChatTurn(BaseModel):
    role: TranscriptRole
    text: str

    def to_domain(self) -> TranscriptTurn:
        return TranscriptTurn(role=self.role, text=self.text)


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    history: list[ChatTurn] | None = None


class DocumentStatusOut(BaseModel):
    id: int
    fileName: str
    processingState: str
    activationProgress: int


class DocumentStatusesOut(BaseModel):
    readiness: str
    documents: list[DocumentStatusOut]


class SyncResultOut(BaseModel):
    message: str
    synced: int
    skipped: int
    errors: int
