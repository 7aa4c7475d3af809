"""
Data models for the browser control plane.

This module defines Pydantic models shared by the sessions, the flow runner
and the HTTP layer:
- Chunk: one executed script block recorded against a session
- Inspection: point-in-time summary of a page's interactive surface
- SessionStatus / SessionReview / StopSummary: session read models
- ProfileInfo / FlowInfo: listings of persisted inputs
- FlowResult / ChunkResult: outcomes of script execution
- *Request: HTTP request bodies

Python attributes are snake_case; JSON payloads are camelCase.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model serializing to camelCase and accepting either casing."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------


class HeadingInfo(ApiModel):
    tag: str
    text: str


class ButtonInfo(ApiModel):
    text: str
    selector: str
    in_viewport: bool = False


class LinkInfo(ApiModel):
    text: str
    href: str
    selector: str
    in_viewport: bool = False


class InputInfo(ApiModel):
    type: str
    name: Optional[str] = None
    selector: str
    placeholder: Optional[str] = None
    in_viewport: bool = False


class Inspection(ApiModel):
    """Point-in-time snapshot of a page. Never persisted except the screenshot."""

    url: str
    title: str = ""
    headings: list[HeadingInfo] = Field(default_factory=list, max_length=5)
    buttons: list[ButtonInfo] = Field(default_factory=list, max_length=15)
    links: list[LinkInfo] = Field(default_factory=list, max_length=15)
    inputs: list[InputInfo] = Field(default_factory=list, max_length=10)
    screenshot_path: Optional[str] = None


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class Chunk(ApiModel):
    """Immutable record of one executed script block."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    index: int = Field(ge=1)
    label: str
    code: str
    executed_at: str


class ChunkResult(ApiModel):
    """Outcome of a chunk execution. Failures are data, not HTTP errors."""

    type: Literal["chunk_complete", "chunk_failed"]
    session: str
    label: str
    chunk: Optional[Chunk] = None
    error: Optional[str] = None
    inspection: Optional[Inspection] = None

    @property
    def ok(self) -> bool:
        return self.type == "chunk_complete"


class SessionStatus(ApiModel):
    name: str
    active: bool
    state: str
    session_id: Optional[str] = None
    url: Optional[str] = None
    start_url: Optional[str] = None
    profile: Optional[str] = None
    chunks: int = 0
    screenshot_index: int = 0
    created_at: Optional[str] = None


class SessionReview(ApiModel):
    type: Literal["review"] = "review"
    name: str
    session_id: Optional[str] = None
    start_url: Optional[str] = None
    profile: Optional[str] = None
    chunks: list[Chunk] = Field(default_factory=list)


class AuthOutcome(ApiModel):
    """
    Result of an auth persistence attempt during teardown.

    ``saved=False`` with an ``error`` is a soft failure: it was logged and
    teardown carried on.
    """

    profile: Optional[str] = None
    saved: bool = False
    error: Optional[str] = None

    @property
    def soft_failure(self) -> bool:
        return self.profile is not None and not self.saved


class StopSummary(ApiModel):
    name: str
    session_id: Optional[str] = None
    chunks_recorded: int = 0
    screenshots_taken: int = 0
    auth: AuthOutcome = Field(default_factory=AuthOutcome)


class AuthSaveResult(ApiModel):
    type: Literal["auth_saved"] = "auth_saved"
    session: str
    profile: str
    path: str
    description: Optional[str] = None
    created: bool = False


# ---------------------------------------------------------------------------
# Profiles and flows
# ---------------------------------------------------------------------------


class ProfileMeta(ApiModel):
    description: Optional[str] = None
    created_at: str
    updated_at: str


class ProfileInfo(ApiModel):
    name: str
    domain: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    has_state: bool = False


class FlowInfo(ApiModel):
    name: str
    path: str
    start_url: Optional[str] = None
    generated_at: Optional[str] = None
    steps: Optional[int] = None


class FlowResult(ApiModel):
    type: Literal["flow_result"] = "flow_result"
    flow: str
    status: Literal["passed", "failed"]
    start_url: str
    error: Optional[str] = None
    inspection: Optional[Inspection] = None
    duration_ms: int = 0

    @property
    def passed(self) -> bool:
        return self.status == "passed"


# ---------------------------------------------------------------------------
# HTTP request bodies
# ---------------------------------------------------------------------------


class CreateSessionRequest(ApiModel):
    name: Optional[str] = None
    url: Optional[str] = None
    profile: Optional[str] = None
    headless: Optional[bool] = None


class ChunkRequest(ApiModel):
    label: Optional[str] = None
    code: Optional[str] = None


class NavigateRequest(ApiModel):
    url: Optional[str] = None
    full_page: bool = False


class SaveAuthRequest(ApiModel):
    profile: Optional[str] = None
    description: Optional[str] = None


class RunFlowRequest(ApiModel):
    profile: Optional[str] = None
    start_url: Optional[str] = None
    headless: Optional[bool] = None


class ExportFlowRequest(ApiModel):
    name: Optional[str] = None
    overwrite: bool = False
