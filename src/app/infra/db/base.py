# src/app/infra/db/base.py
"""
Abstract repositories for the token ledger, the recipe graph and the import journal.
Services depend on these interfaces so tests can swap in in-memory stubs.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional

from src.app.domain.models import (
    ImportLogEntry,
    IngredientCatalogEntry,
    InsertResult,
    MeasurementType,
    RecipeGraph,
    TokenTransaction,
    TransactionReason,
)


class LedgerRepository(ABC):
    """
    Token balances plus their append-only transaction journal.

    Implementations:
    - SupabaseLedgerRepository: user_tokens / token_transactions with atomic RPCs
    """

    @abstractmethod
    def get_balance(self, user_id: str) -> Optional[int]:
        """Current balance, or None when the user has no balance row."""
        pass

    @abstractmethod
    def apply_debit(
        self,
        user_id: str,
        amount: int,
        reason: TransactionReason,
        related_recipe_id: Optional[str] = None,
    ) -> Optional[TokenTransaction]:
        """
        Atomically decrement the balance and append a debit transaction.

        The decrement is conditional on balance >= amount.

        Returns:
            The journal entry, or None when the balance was insufficient
            (nothing is written in that case)
        """
        pass

    @abstractmethod
    def apply_credit(
        self,
        user_id: str,
        amount: int,
        reason: TransactionReason,
        transaction_id: Optional[str] = None,
    ) -> Optional[TokenTransaction]:
        """
        Atomically increment (or create) the balance and append a credit transaction.

        Returns:
            The journal entry, or None when transaction_id was already recorded
        """
        pass

    @abstractmethod
    def find_transaction_by_external_id(self, transaction_id: str) -> Optional[TokenTransaction]:
        pass

    @abstractmethod
    def count_debits_since(
        self,
        user_id: str,
        reasons: Iterable[TransactionReason],
        since: datetime,
    ) -> int:
        pass

    @abstractmethod
    def list_transactions(self, user_id: str) -> list[TokenTransaction]:
        """All transactions of a user in chronological order."""
        pass


class CatalogRepository(ABC):
    """Shared reference data sent to the extractor and used for matching."""

    @abstractmethod
    def list_ingredients(self) -> list[IngredientCatalogEntry]:
        pass

    @abstractmethod
    def list_measurement_types(self) -> list[MeasurementType]:
        pass


class RecipeRepository(ABC):

    @abstractmethod
    def insert_recipe_graph(self, graph: RecipeGraph) -> InsertResult:
        """
        Write recipe, steps, new ingredients and ingredient lines in one transaction.
        Nothing is persisted if any part fails.
        """
        pass


class ImportLogRepository(ABC):

    @abstractmethod
    def create(self, entry: ImportLogEntry) -> bool:
        """
        Insert a pending entry.

        Returns:
            False if an entry with the same id already exists
        """
        pass

    @abstractmethod
    def complete(self, entry: ImportLogEntry) -> bool:
        """
        Write the terminal state of a pending entry.

        Returns:
            False if the entry was missing or already terminal
        """
        pass

    @abstractmethod
    def get(self, import_id: str, user_id: str) -> Optional[ImportLogEntry]:
        pass
