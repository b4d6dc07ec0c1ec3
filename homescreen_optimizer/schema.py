"""
Layout Schema: Pydantic models for slots, profiles, plans and guided apply drafts.

Python attributes are snake_case; serialized JSON uses the camelCase field
names shared with the profile, plan and draft stores.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SchemaModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


# ==============================================================================
# SLOTS
# ==============================================================================


class SlotType(str, Enum):
    """Kind of home-screen cell."""

    APP = "app"
    DOCK = "dock"
    FOLDER = "folder"
    WIDGET_LOCKED = "widgetLocked"
    HOLDING = "holding"


SLOT_TYPE_ORDER = {
    SlotType.APP: 0,
    SlotType.DOCK: 1,
    SlotType.FOLDER: 2,
    SlotType.WIDGET_LOCKED: 3,
    SlotType.HOLDING: 4,
}


class Slot(SchemaModel):
    """Addressable cell on a home-screen page. Dock slots use the column only."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    page: int = Field(0, ge=0)
    row: int = Field(0, ge=0)
    column: int = Field(0, ge=0)
    type: SlotType = SlotType.APP

    def sort_key(self):
        return (self.page, SLOT_TYPE_ORDER[self.type], self.row, self.column)


# ==============================================================================
# APPS AND PROFILES
# ==============================================================================


class AppItem(SchemaModel):
    """App under optimization. usage_score is derived by rank when missing."""

    id: UUID = Field(default_factory=uuid4)
    bundle_identifier: Optional[str] = None
    display_name: str
    category: Optional[str] = None
    dominant_color_hex: Optional[str] = None
    usage_score: Optional[float] = None


class Handedness(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    ALTERNATING = "alternating"


class GripMode(str, Enum):
    ONE_HAND = "oneHand"
    TWO_HAND = "twoHand"


class ProfileContext(str, Enum):
    WORKDAY = "workday"
    WEEKEND = "weekend"
    CUSTOM = "custom"


class GoalWeights(SchemaModel):
    """Relative weight of each scoring goal. Callers keep the sum at 1.0."""

    utility: float
    flow: float
    aesthetics: float
    move_cost: float

    @classmethod
    def default(cls) -> "GoalWeights":
        return cls(utility=0.45, flow=0.20, aesthetics=0.20, move_cost=0.15)

    @property
    def total(self) -> float:
        return self.utility + self.flow + self.aesthetics + self.move_cost


class ReachabilityMap(SchemaModel):
    """Calibrated per-slot reachability weights in [0, 1]."""

    slot_weights: Dict[Slot, float] = Field(default_factory=dict)

    @field_validator("slot_weights", mode="before")
    @classmethod
    def _accept_entry_list(cls, v):
        """Accept the serialized list-of-entries form as well as a mapping."""
        if isinstance(v, list):
            weights = {}
            for entry in v:
                slot = entry["slot"]
                if not isinstance(slot, Slot):
                    slot = Slot.model_validate(slot)
                weights[slot] = float(entry["weight"])
            return weights
        return v

    @field_serializer("slot_weights")
    def _serialize_entries(self, weights: Dict[Slot, float]) -> List[Dict[str, Any]]:
        entries = sorted(weights.items(), key=lambda item: item[0].sort_key())
        return [
            {"slot": slot.model_dump(by_alias=True, mode="json"), "weight": weight}
            for slot, weight in entries
        ]

    def weight_for(self, slot: Slot) -> Optional[float]:
        return self.slot_weights.get(slot)


class Profile(SchemaModel):
    """Per-user ergonomic and aesthetic profile."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    context: ProfileContext = ProfileContext.WORKDAY
    handedness: Handedness = Handedness.RIGHT
    grip_mode: GripMode = GripMode.ONE_HAND
    goal_weights: GoalWeights = Field(default_factory=GoalWeights.default)
    reachability_map: ReachabilityMap = Field(default_factory=ReachabilityMap)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


# ==============================================================================
# LAYOUTS AND SCORES
# ==============================================================================


class LayoutAssignment(SchemaModel):
    """One app placed in one slot."""

    app_id: UUID = Field(alias="appID")
    slot: Slot


class ScoreBreakdown(SchemaModel):
    """Weighted score terms for one layout."""

    utility_score: float = 0.0
    flow_score: float = 0.0
    aesthetic_score: float = 0.0
    move_cost_penalty: float = 0.0

    @classmethod
    def zero(cls) -> "ScoreBreakdown":
        return cls()

    @property
    def aggregate_score(self) -> float:
        return (
            self.utility_score
            + self.flow_score
            + self.aesthetic_score
            - self.move_cost_penalty
        )


class LayoutPlan(SchemaModel):
    """Recommended layout for a profile."""

    id: UUID = Field(default_factory=uuid4)
    profile_id: UUID = Field(alias="profileID")
    assignments: List[LayoutAssignment] = Field(default_factory=list)
    score_breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    generated_at: datetime = Field(default_factory=_utcnow)


class MoveStep(SchemaModel):
    """Single manual move the user performs to reach the recommended layout."""

    id: UUID = Field(default_factory=uuid4)
    app_id: UUID = Field(alias="appID")
    from_slot: Slot
    to_slot: Slot
    depends_on_step_id: Optional[UUID] = Field(None, alias="dependsOnStepID")


class SimulationSummary(SchemaModel):
    """What-if comparison between the current and a candidate layout."""

    aggregate_score_delta: float
    move_count: int = Field(ge=0)


class GuidedApplyDraft(SchemaModel):
    """Resumable state of a guided apply session, one per profile."""

    profile_id: UUID = Field(alias="profileID")
    plan_id: UUID = Field(alias="planID")
    current_assignments: List[LayoutAssignment] = Field(default_factory=list)
    recommended_assignments: List[LayoutAssignment] = Field(default_factory=list)
    move_steps: List[MoveStep] = Field(default_factory=list)
    app_names_by_id: Dict[UUID, str] = Field(default_factory=dict, alias="appNamesByID")
    completed_step_ids: Set[UUID] = Field(default_factory=set, alias="completedStepIDs")
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def next_pending_step(self) -> Optional[MoveStep]:
        for step in self.move_steps:
            if step.id not in self.completed_step_ids:
                return step
        return None

    @property
    def progress(self) -> float:
        if not self.move_steps:
            return 1.0
        done = sum(1 for step in self.move_steps if step.id in self.completed_step_ids)
        return done / len(self.move_steps)

    def toggle_step(self, step_id: UUID) -> "GuidedApplyDraft":
        """Flip completion of a known step. Unknown ids leave the draft unchanged."""
        if not any(step.id == step_id for step in self.move_steps):
            return self

        completed = set(self.completed_step_ids)
        if step_id in completed:
            completed.remove(step_id)
        else:
            completed.add(step_id)
        return self.model_copy(
            update={"completed_step_ids": completed, "updated_at": _utcnow()}
        )

    def mark_next_step_complete(self) -> "GuidedApplyDraft":
        step = self.next_pending_step
        if step is None:
            return self
        return self.toggle_step(step.id)

    def reset_progress(self) -> "GuidedApplyDraft":
        return self.model_copy(
            update={"completed_step_ids": set(), "updated_at": _utcnow()}
        )


# ==============================================================================
# INGESTION OUTPUTS
# ==============================================================================


class ImportQuality(str, Enum):
    """Coarse quality estimate of one OCR import."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DetectedAppSlot(SchemaModel):
    """Grid mapper output unit: one resolved label per cell."""

    app_name: str
    confidence: float = Field(ge=0.0, le=1.0)
    slot: Slot
    label_center_x: Optional[float] = None
    label_center_y: Optional[float] = None
    label_width: Optional[float] = None
    label_height: Optional[float] = None


class LayoutGridDetection(SchemaModel):
    """Mapped page: app labels plus cells covered by widgets."""

    rows: int = Field(ge=0)
    columns: int = Field(ge=0)
    apps: List[DetectedAppSlot] = Field(default_factory=list)
    widget_locked_slots: List[Slot] = Field(default_factory=list)


class ScreenTimeUsageEntry(SchemaModel):
    """Per-app daily usage recovered from a usage-summary screenshot."""

    app_name: str
    minutes_per_day: float = Field(ge=0.0)
    confidence: float = Field(ge=0.0, le=1.0)
