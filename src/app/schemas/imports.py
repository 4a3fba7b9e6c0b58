from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from src.app.domain.models import ImportLogEntry, ImportOutcome


class UrlImportRequest(BaseModel):
    url: str
    language: str = "en"
    translate: bool = True
    importId: Optional[str] = None


class VideoImportRequest(BaseModel):
    url: str
    language: str = "en"
    translate: bool = True
    startTimestamp: Optional[str] = None
    endTimestamp: Optional[str] = None
    importId: Optional[str] = None


class MediaImportRequest(BaseModel):
    storagePaths: list[str] = Field(default_factory=list)
    mediaType: str
    language: str = "en"
    translate: bool = True
    importId: Optional[str] = None


class TokensUsed(BaseModel):
    inputTokens: int = 0
    outputTokens: int = 0


class ImportStatsModel(BaseModel):
    stepsCount: int
    ingredientsCount: int
    newIngredientsCount: int
    tokensUsed: TokensUsed


class ImportResponse(BaseModel):
    success: bool
    importId: Optional[str] = None
    recipeId: Optional[str] = None
    recipeName: Optional[str] = None
    error: Optional[str] = None
    errorCode: Optional[str] = None
    tokensDeducted: Optional[int] = None
    tokensRemaining: Optional[int] = None
    tokensRequired: Optional[int] = None
    tokensAvailable: Optional[int] = None
    rateLimitRemaining: Optional[int] = None
    rateLimitReset: Optional[datetime] = None
    stats: Optional[ImportStatsModel] = None

    @classmethod
    def from_outcome(cls, outcome: ImportOutcome) -> "ImportResponse":
        stats = None
        if outcome.stats is not None:
            stats = ImportStatsModel(
                stepsCount=outcome.stats.steps_count,
                ingredientsCount=outcome.stats.ingredients_count,
                newIngredientsCount=outcome.stats.new_ingredients_count,
                tokensUsed=TokensUsed(
                    inputTokens=outcome.stats.usage.input_tokens,
                    outputTokens=outcome.stats.usage.output_tokens,
                ),
            )
        return cls(
            success=outcome.success,
            importId=outcome.import_id,
            recipeId=outcome.recipe_id,
            recipeName=outcome.recipe_name,
            error=outcome.error,
            errorCode=outcome.error_code,
            tokensDeducted=outcome.tokens_deducted,
            tokensRemaining=outcome.tokens_remaining,
            tokensRequired=outcome.tokens_required,
            tokensAvailable=outcome.tokens_available,
            rateLimitRemaining=outcome.rate_limit_remaining,
            rateLimitReset=outcome.rate_limit_reset,
            stats=stats,
        )


class ImportStatusResponse(BaseModel):
    importId: str
    status: Literal["pending", "success", "failed"]
    importType: str
    recipeId: Optional[str] = None
    recipeName: Optional[str] = None
    tokensUsed: Optional[int] = None
    errorMessage: Optional[str] = None
    errorCode: Optional[str] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_entry(cls, entry: ImportLogEntry) -> "ImportStatusResponse":
        return cls(
            importId=entry.id,
            status=entry.status.value,
            importType=entry.import_type.value,
            recipeId=entry.recipe_id,
            recipeName=entry.recipe_name,
            tokensUsed=entry.tokens_used,
            errorMessage=entry.error_message,
            errorCode=entry.error_code,
            createdAt=entry.created_at,
        )
