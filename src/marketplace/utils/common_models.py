from pydantic import BaseModel, Field, model_validator
from typing import Optional, Any, Dict
from typing_extensions import Self
from enum import Enum


class CaseInsensitiveEnum(Enum):
    """Enum class that enables case-insensitive matching."""
    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return super()._missing_(value)


class ErrorKind(str, CaseInsensitiveEnum):
    """Stable error kinds reported across the engine boundary"""
    INVALID_TRANSITION = 'InvalidTransition'
    DUPLICATE_ACTIVE_OFFER = 'DuplicateActiveOffer'
    SLOT_CONFLICT = 'SlotConflict'
    ALREADY_FAVORITED = 'AlreadyFavorited'
    NOT_AUTHORIZED = 'NotAuthorized'
    NOT_FOUND = 'NotFound'
    INVALID_RATING = 'InvalidRating'
    INVALID_AMOUNT = 'InvalidAmount'
    INVALID_SLOT = 'InvalidSlot'
    INVALID_EXPIRY = 'InvalidExpiry'


class ActionStatus(BaseModel):
    class State(str, CaseInsensitiveEnum):
        """Results of the various actions """
        PENDING = 'Pending'
        SUCCESS = 'Success'
        FAILURE = 'Failure'

    state : State = Field(
        ..., description='Result of the action'
    )
    reason : Optional[str] = Field(
        default=None, description='Reason for failure'
    )
    @model_validator(mode='after')
    def validate_input(self) -> Self:
        if self.state == ActionStatus.State.FAILURE and not self.reason:
            raise ValueError(
                    f"Failed action needs a reason"
                )
        return self


class EngineError(BaseModel):
    kind: ErrorKind = Field(
        ..., description='Stable error kind'
    )
    message: str = Field(
        ..., description='Human readable explanation'
    )
    context: Dict[str, Any] = Field(
        default_factory=dict, description='Conflicting entity ids, current state, etc.'
    )


class ActionResult(BaseModel):
    """Authoritative outcome of an engine operation: data on success, typed error on failure"""
    result: ActionStatus
    data: Optional[Any] = Field(
        default=None, description='Entity view returned by the operation'
    )
    error: Optional[EngineError] = Field(
        default=None, description='Typed failure'
    )

    @model_validator(mode='after')
    def validate_input(self) -> Self:
        if self.result.state == ActionStatus.State.FAILURE and not self.error:
            raise ValueError(
                    f"Failed action needs an error"
                )
        return self

    @property
    def ok(self) -> bool:
        return self.result.state == ActionStatus.State.SUCCESS

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @classmethod
    def success(cls, data: Any = None) -> 'ActionResult':
        return cls(result=ActionStatus(state=ActionStatus.State.SUCCESS), data=data)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, context: Dict[str, Any] = None) -> 'ActionResult':
        return cls(
            result=ActionStatus(state=ActionStatus.State.FAILURE, reason=message),
            error=EngineError(kind=kind, message=message, context=context or {}),
        )


class Actor(BaseModel):
    """Identity and role of whoever invokes an engine operation"""
    class Role(str, CaseInsensitiveEnum):
        BUYER = 'buyer'
        SELLER = 'seller'
        AGENT = 'agent'
        ADMIN = 'admin'

    user_id: str = Field(
        ..., description="User ID"
    )
    role: Role = Field(
        default=Role.BUYER, description="Role of the user"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Actor.Role.ADMIN
