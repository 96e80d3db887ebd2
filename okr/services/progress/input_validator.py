"""
Key result input validation.

Checks the cross-record contract of a key result snapshot before the
progress engine runs: required fields, enum values, finite numbers,
quarter numbering and check-in links.
"""

import logging
import math
from typing import Any, Iterable, List, Optional

from common.utils.exceptions import ValidationException
from okr.schemas.progress import (
    CheckIn,
    KeyResult,
    KrAggregation,
    KrDirection,
    KrType,
)

logger = logging.getLogger(__name__)


class InvalidKeyResultInput(ValidationException):
    """A key result snapshot violates the engine's input contract."""

    def __init__(
        self,
        message: str,
        key_result_id: Optional[str] = None,
        errors: Optional[list] = None,
    ):
        super().__init__(
            message=message,
            code="INVALID_KEY_RESULT_INPUT",
            details={"keyResultId": key_result_id} if key_result_id else None,
            errors=errors,
        )
        self.key_result_id = key_result_id
        self.errors = errors or []


class KeyResultValidator:
    """
    Validates key result snapshots against the engine's input contract.
    """

    MIN_YEAR = 1
    MAX_YEAR = 9998
    QUARTERS = (1, 2, 3, 4)

    @classmethod
    def validate(
        cls,
        key_result: KeyResult,
        check_ins: Iterable[CheckIn] = (),
        year: Optional[int] = None,
    ) -> None:
        """
        Validate a key result, its quarter targets and its check-ins.

        Args:
            key_result: Key result snapshot
            check_ins: Check-ins recorded against the key result
            year: Calendar year the computation runs for

        Raises:
            InvalidKeyResultInput: Listing every violation found
        """
        errors = cls.collect_errors(key_result, check_ins, year)

        if errors:
            kr_id = getattr(key_result, "id", None)
            logger.warning(f"Rejected key result {kr_id}: {'; '.join(errors)}")
            raise InvalidKeyResultInput(
                f"Invalid key result input: {errors[0]}",
                key_result_id=kr_id,
                errors=errors,
            )

    @classmethod
    def collect_errors(
        cls,
        key_result: KeyResult,
        check_ins: Iterable[CheckIn] = (),
        year: Optional[int] = None,
    ) -> List[str]:
        """
        Collect contract violations without raising.

        Returns:
            List of human-readable error messages (empty when valid)
        """
        errors: List[str] = []

        if getattr(key_result, "target_value", None) is None:
            errors.append("Missing required field: targetValue")

        cls._check_enum(errors, "krType", getattr(key_result, "kr_type", None), KrType)
        cls._check_enum(errors, "direction", getattr(key_result, "direction", None), KrDirection)
        cls._check_enum(errors, "aggregation", getattr(key_result, "aggregation", None), KrAggregation)

        for field, value in (
            ("startValue", getattr(key_result, "start_value", 0.0)),
            ("targetValue", getattr(key_result, "target_value", None)),
            ("currentValue", getattr(key_result, "current_value", None)),
            ("weight", getattr(key_result, "weight", 1.0)),
            ("toleranceBand", getattr(key_result, "tolerance_band", None)),
        ):
            if value is not None and not cls._is_finite(value):
                errors.append(f"Field '{field}' must be a finite number")

        tolerance = getattr(key_result, "tolerance_band", None)
        if tolerance is not None and cls._is_finite(tolerance) and tolerance <= 0:
            errors.append("Field 'toleranceBand' must be positive")

        if year is not None and not cls.MIN_YEAR <= year <= cls.MAX_YEAR:
            errors.append(f"Year must be between {cls.MIN_YEAR} and {cls.MAX_YEAR}")

        quarter_target_ids = set()
        seen_quarters = set()
        for quarter_target in getattr(key_result, "quarter_targets", None) or []:
            quarter = quarter_target.quarter
            if quarter not in cls.QUARTERS:
                errors.append(f"Quarter {quarter} is outside 1-4")
            elif quarter in seen_quarters:
                errors.append(f"Duplicate quarter target for Q{quarter}")
            seen_quarters.add(quarter)

            if not cls._is_finite(quarter_target.target_value):
                errors.append(f"Q{quarter} targetValue must be a finite number")
            if quarter_target.current_value is not None and not cls._is_finite(
                quarter_target.current_value
            ):
                errors.append(f"Q{quarter} currentValue must be a finite number")

            if quarter_target.id is not None:
                quarter_target_ids.add(quarter_target.id)

        for check_in in check_ins:
            if check_in.occurred_at is None:
                errors.append("Check-in is missing occurredAt")
            if not cls._is_finite(check_in.value):
                errors.append("Check-in value must be a finite number")
            link = check_in.quarter_target_id
            if link is not None and link not in quarter_target_ids:
                errors.append(f"Check-in links to unknown quarter target '{link}'")

        return errors

    @staticmethod
    def _check_enum(errors: List[str], field: str, value: Any, enum_cls) -> None:
        """Record an error unless value is a member of enum_cls."""
        try:
            enum_cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            errors.append(f"Field '{field}' must be one of: {allowed}")

    @staticmethod
    def _is_finite(value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        return math.isfinite(value)
