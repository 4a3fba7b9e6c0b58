# src/app/domain/models.py
"""
Domain models for recipe imports, the token ledger and the import journal.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ImportKind(str, Enum):
    """Source kind of an import, as stored in import_logs.import_type."""
    URL = "url"
    VIDEO = "video"
    IMAGE = "image"
    PDF = "pdf"


class ImportStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionReason(str, Enum):
    PURCHASE = "purchase"
    IMPORT_WEBSITE = "import_website"
    IMPORT_VIDEO = "import_video"
    IMPORT_MEDIA = "import_media"
    BONUS = "bonus"
    REFUND = "refund"


# Debits counted by the rolling-window rate limit
IMPORT_REASONS = (
    TransactionReason.IMPORT_WEBSITE,
    TransactionReason.IMPORT_VIDEO,
    TransactionReason.IMPORT_MEDIA,
)


class ClientPlatform(str, Enum):
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"
    UNKNOWN = "unknown"

    @classmethod
    def from_header(cls, value: Optional[str]) -> "ClientPlatform":
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass
class TokenTransaction:
    """One journal entry of the token ledger."""
    user_id: str
    amount: int  # signed: negative for debits
    type: TransactionType
    reason: TransactionReason
    balance_after: int
    id: Optional[str] = None
    transaction_id: Optional[str] = None  # external purchase id
    related_recipe_id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class DebitResult:
    new_balance: int
    transaction: Optional[TokenTransaction] = None


@dataclass
class CreditResult:
    new_balance: int
    already_processed: bool = False
    transaction: Optional[TokenTransaction] = None


@dataclass
class RateLimitStatus:
    allowed: bool
    remaining: int
    reset_at: datetime
    used: int = 0
    limit: int = 150


@dataclass
class AIUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    def __add__(self, other: "AIUsage") -> "AIUsage":
        return AIUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )


@dataclass(frozen=True)
class ImportPolicy:
    """
    Costs and limits applied to every import.

    Built once from settings at startup and passed to the services that need it.
    """
    cost_website: int = 1
    cost_video: int = 2
    cost_media: int = 3
    rate_limit: int = 150
    rate_window_hours: int = 24
    max_images: int = 3
    max_pdfs: int = 1
    # 5 MiB provider ceiling after base64 expansion
    max_file_bytes: int = int(5 * 1024 * 1024 / 1.333)
    min_ocr_chars: int = 50
    max_error_chars: int = 1000
    max_source_chars: int = 500

    def cost_for(self, kind: ImportKind) -> int:
        if kind is ImportKind.URL:
            return self.cost_website
        if kind is ImportKind.VIDEO:
            return self.cost_video
        return self.cost_media

    @staticmethod
    def reason_for(kind: ImportKind) -> TransactionReason:
        if kind is ImportKind.URL:
            return TransactionReason.IMPORT_WEBSITE
        if kind is ImportKind.VIDEO:
            return TransactionReason.IMPORT_VIDEO
        return TransactionReason.IMPORT_MEDIA


@dataclass
class IngredientCatalogEntry:
    id: str
    name_en: str
    name_de: str


@dataclass
class MeasurementType:
    id: str
    name_en: str
    name_de: str
    abbreviation_en: Optional[str] = None
    abbreviation_de: Optional[str] = None

    def names(self) -> set[str]:
        values = (self.name_en, self.name_de, self.abbreviation_en, self.abbreviation_de)
        return {v.strip().lower() for v in values if v}


@dataclass
class RecipeRow:
    user_id: str
    name: str
    author: Optional[str] = None
    description: Optional[str] = None
    prep_time_minutes: Optional[int] = None
    cook_time_minutes: Optional[int] = None
    total_time_minutes: Optional[int] = None
    recipe_yield: Optional[str] = None
    category: Optional[str] = None
    cuisine: Optional[str] = None
    image_url: Optional[str] = None
    source_url: Optional[str] = None
    keywords: list[str] = field(default_factory=list)
    language: str = "en"


@dataclass
class StepRow:
    step_number: int
    instruction: str
    duration_minutes: Optional[int] = None


@dataclass
class IngredientLine:
    """
    One recipe_ingredients row. Either ingredient_id points at an existing
    catalog entry or name_en/name_de describe an ingredient to insert-or-fetch.
    """
    display_order: int
    name_en: str
    name_de: str
    ingredient_id: Optional[str] = None
    measurement_type_id: Optional[str] = None
    quantity: Optional[float] = None
    notes: Optional[str] = None

    @property
    def is_new(self) -> bool:
        return self.ingredient_id is None


@dataclass
class RecipeGraph:
    recipe: RecipeRow
    steps: list[StepRow] = field(default_factory=list)
    ingredients: list[IngredientLine] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "recipe": vars(self.recipe).copy(),
            "steps": [vars(s).copy() for s in self.steps],
            "ingredients": [
                {k: v for k, v in vars(line).items()}
                for line in self.ingredients
            ],
        }


@dataclass
class InsertResult:
    recipe_id: str
    new_ingredients_count: int = 0


@dataclass
class ImportLogEntry:
    """A row of import_logs. Created pending, then updated once to success or failed."""
    id: str
    user_id: str
    import_type: ImportKind
    source: str
    status: ImportStatus = ImportStatus.PENDING
    platform: ClientPlatform = ClientPlatform.UNKNOWN
    recipe_id: Optional[str] = None
    recipe_name: Optional[str] = None
    tokens_used: int = 0
    models_used: list[str] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    duration_ms: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass
class ImportStats:
    steps_count: int
    ingredients_count: int
    new_ingredients_count: int
    usage: AIUsage = field(default_factory=AIUsage)


@dataclass
class ImportOutcome:
    """Result of one import request; rejections and failures set error_code."""
    success: bool
    import_id: Optional[str] = None
    recipe_id: Optional[str] = None
    recipe_name: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    tokens_deducted: Optional[int] = None
    tokens_remaining: Optional[int] = None
    tokens_required: Optional[int] = None
    tokens_available: Optional[int] = None
    rate_limit_remaining: Optional[int] = None
    rate_limit_reset: Optional[datetime] = None
    stats: Optional[ImportStats] = None


@dataclass
class PurchaseResult:
    success: bool
    balance: int
    tokens_added: int = 0
    already_processed: bool = False
