from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from gridle.common.types import Direction


class ChallengeResponse(BaseModel):
    date: str
    seed: int
    cols: int
    rows: int
    opponent_count: int
    ticks_per_second: int


class StartAttemptRequest(BaseModel):
    date: Optional[str] = None


class StartAttemptResponse(BaseModel):
    attempt_id: str
    challenge: ChallengeResponse


class HeadingRequest(BaseModel):
    direction: Direction


class HeadingResponse(BaseModel):
    accepted: bool
    heading: Direction


class AgentView(BaseModel):
    id: str
    pos: List[int]
    heading: Direction
    color: str
    alive: bool
    controllable: bool


class TickEventsView(BaseModel):
    deaths: List[str] = Field(default_factory=list)
    turns: List[str] = Field(default_factory=list)


class AttemptSnapshot(BaseModel):
    attempt_id: str
    date: str
    tick: int
    status: str
    elapsed_ms: int
    cols: int
    rows: int
    player: AgentView
    opponents: List[AgentView]
    trails: List[List[Optional[str]]]
    events: TickEventsView


class ShareResponse(BaseModel):
    text: str


class StreakResponse(BaseModel):
    streak: int
    last_win_date: Optional[str] = None
    last_win_ms: Optional[int] = None


class CountdownResponse(BaseModel):
    next_challenge_at: str
    remaining: str
    share_text: str


class HistoryEntry(BaseModel):
    attempt_id: str
    date: str
    status: str
    elapsed_ms: int
    ticks: int
    opponents_left: int
    created_at: int
