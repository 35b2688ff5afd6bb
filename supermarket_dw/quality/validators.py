"""
Pre-insert Batch Validation

Rule-based checks run over each insert batch before it reaches the store.
Every rule here mirrors a declarative constraint on the warehouse tables, so
a batch that passes is one the store will accept. A failing ERROR check
rejects the whole unit; nothing is written.

Checks:
- Not-null and uniqueness (single or composite natural keys)
- Range, positivity and allowed-value checks
- Pattern checks on text keys
- Line total consistency for sales
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
import polars as pl
import structlog

from supermarket_dw.database.models import DayPeriod

logger = structlog.get_logger(__name__)


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Rejects the unit
    WARNING = "warning"  # Logged, load continues
    INFO = "info"


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @property
    def failed_check_names(self) -> List[str]:
        """Names of ERROR checks that did not pass"""
        return [
            c.name for c in self.checks
            if not c.passed and c.severity == ValidationSeverity.ERROR
        ]


def batch_frame(rows: Sequence[Dict[str, Any]]) -> pl.DataFrame:
    """
    Frame an insert batch for validation.

    Decimal values become floats; every rule compares against limits well
    inside float precision at two or three decimal places.
    """
    converted = [
        {k: float(v) if isinstance(v, Decimal) else v for k, v in row.items()}
        for row in rows
    ]
    return pl.DataFrame(converted)


class DataValidator:
    """
    Batch validator built from chained checks.

    Example:
        validator = DataValidator("prices")
        validator.add_not_null_check("product_id")
        validator.add_positive_check("wholesale_price", allow_zero=False)
        result = validator.validate(batch_frame(rows))
    """

    def __init__(self, entity: str = "batch", strict_mode: bool = False):
        self.entity = entity
        self.strict_mode = strict_mode  # Fail on any warning
        self._checks: List[Callable[[pl.DataFrame], ValidationCheck]] = []

    @staticmethod
    def _missing_column(name: str, column: str, severity: ValidationSeverity) -> ValidationCheck:
        return ValidationCheck(
            name=name,
            passed=False,
            severity=severity,
            message=f"Column '{column}' not found",
        )

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for null values in column"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"not_null_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            null_count = df[column].null_count()
            passed = null_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {null_count} null values" if not passed else f"Column '{column}' has no null values",
                details={"null_count": null_count},
                failed_rows=null_count,
                total_rows=df.height,
            )

        self._checks.append(check)
        return self

    def add_unique_check(
        self,
        columns: Sequence[str],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check that the (possibly composite) key has no repeated values"""
        columns = [columns] if isinstance(columns, str) else list(columns)

        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"unique_{'_'.join(columns)}"
            missing = [c for c in columns if c not in df.columns]
            if missing:
                return self._missing_column(name, missing[0], severity)

            total = df.height
            unique_count = df.select(columns).unique().height
            duplicate_count = total - unique_count
            passed = duplicate_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Key {columns} has {duplicate_count} duplicate values" if not passed else f"Key {columns} values are unique",
                details={"unique_count": unique_count, "duplicate_count": duplicate_count},
                failed_rows=duplicate_count,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
        name: Optional[str] = None,
    ) -> "DataValidator":
        """Add check for values within an inclusive range"""
        check_name = name or f"range_{column}"

        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns:
                return self._missing_column(check_name, column, severity)

            conditions = []
            if min_value is not None:
                conditions.append(pl.col(column) < min_value)
            if max_value is not None:
                conditions.append(pl.col(column) > max_value)

            if not conditions:
                return ValidationCheck(
                    name=check_name,
                    passed=True,
                    severity=severity,
                    message="No range specified",
                )

            # Combine conditions with OR
            combined = conditions[0]
            for cond in conditions[1:]:
                combined = combined | cond

            out_of_range = df.filter(combined).height
            passed = out_of_range == 0

            return ValidationCheck(
                name=check_name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {out_of_range} values outside range [{min_value}, {max_value}]" if not passed else "All values in range",
                details={"min": min_value, "max": max_value, "out_of_range_count": out_of_range},
                failed_rows=out_of_range,
                total_rows=df.height,
            )

        self._checks.append(check)
        return self

    def add_positive_check(
        self,
        column: str,
        allow_zero: bool = True,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for positive values"""
        min_val = 0 if allow_zero else 0.0001
        return self.add_range_check(column, min_value=min_val, severity=severity, name=f"positive_{column}")

    def add_pattern_check(
        self,
        column: str,
        pattern: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add regex pattern check on a text column"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"pattern_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            non_matching = df.filter(
                ~pl.col(column).str.contains(pattern) & pl.col(column).is_not_null()
            ).height
            passed = non_matching == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {non_matching} values not matching pattern" if not passed else "All values match pattern",
                details={"pattern": pattern, "non_matching_count": non_matching},
                failed_rows=non_matching,
                total_rows=df.height,
            )

        self._checks.append(check)
        return self

    def add_enum_check(
        self,
        column: str,
        allowed_values: List[Any],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values in allowed set"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"enum_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            invalid = df.filter(
                ~pl.col(column).is_in(allowed_values) & pl.col(column).is_not_null()
            ).height
            passed = invalid == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {invalid} invalid values" if not passed else "All values are valid",
                details={"allowed_values": allowed_values, "invalid_count": invalid},
                failed_rows=invalid,
                total_rows=df.height,
            )

        self._checks.append(check)
        return self

    def add_custom_check(
        self,
        name: str,
        check_func: Callable[[pl.DataFrame], bool],
        message_on_fail: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add custom validation check"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            try:
                passed = bool(check_func(df))
                return ValidationCheck(
                    name=name,
                    passed=passed,
                    severity=severity,
                    message="Check passed" if passed else message_on_fail,
                    total_rows=df.height,
                )
            except (pl.exceptions.PolarsError, KeyError, ValueError) as e:
                return ValidationCheck(
                    name=name,
                    passed=False,
                    severity=severity,
                    message=f"Check failed with error: {str(e)}",
                )

        self._checks.append(check)
        return self

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all validation checks on a batch frame.

        An empty batch passes trivially; there is nothing to insert.

        Args:
            df: DataFrame to validate

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.utcnow()

        if df.height == 0:
            return ValidationResult(
                status=ValidationStatus.PASSED,
                total_checks=0,
                passed_checks=0,
                failed_checks=0,
                warning_count=0,
                started_at=started_at,
                completed_at=datetime.utcnow(),
            )

        results = []
        for check_func in self._checks:
            result = check_func(df)
            results.append(result)

            if not result.passed:
                logger.warning(
                    "Validation failed",
                    entity=self.entity,
                    check=result.name,
                    message=result.message,
                    severity=result.severity.value,
                )

        # Calculate summary
        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        if failed_checks > 0:
            status = ValidationStatus.FAILED
        elif warning_count > 0 and self.strict_mode:
            status = ValidationStatus.FAILED
        elif warning_count > 0:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        logger.debug(
            "Validation complete",
            entity=self.entity,
            status=status.value,
            rows=df.height,
            passed=passed_checks,
            failed=failed_checks,
        )

        return ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=datetime.utcnow(),
        )


def _totals_match(df: pl.DataFrame) -> bool:
    """Line totals equal quantity times unit price to within half a cent"""
    exact = df["quantity"].to_numpy() * df["unit_price"].to_numpy()
    return bool(np.allclose(df["total_amount"].to_numpy(), exact, rtol=0, atol=0.005 + 1e-9))


# Pre-built validators, one per warehouse entity
def create_categories_validator() -> DataValidator:
    """Create pre-configured validator for category batches"""
    return (
        DataValidator("categories")
        .add_not_null_check("code")
        .add_not_null_check("name")
        .add_unique_check(["code"])
        .add_pattern_check("code", r"^[0-9]")
    )


def create_products_validator() -> DataValidator:
    """Create pre-configured validator for product batches"""
    return (
        DataValidator("products")
        .add_not_null_check("item_code")
        .add_not_null_check("name")
        .add_not_null_check("category_id")
        .add_unique_check(["item_code"])
        .add_positive_check("item_code", allow_zero=False)
    )


def create_calendar_validator() -> DataValidator:
    """Create pre-configured validator for calendar batches"""
    return (
        DataValidator("calendar")
        .add_not_null_check("date")
        .add_unique_check(["date"])
        .add_range_check("day", min_value=1, max_value=31)
        .add_range_check("month", min_value=1, max_value=12)
        .add_range_check("quarter", min_value=1, max_value=4)
        .add_range_check("weekday", min_value=1, max_value=7)
        .add_range_check("year", min_value=2020, max_value=2100)
    )


def create_hours_validator() -> DataValidator:
    """Create pre-configured validator for the hour lookup"""
    return (
        DataValidator("hours")
        .add_unique_check(["hour"])
        .add_range_check("hour", min_value=0, max_value=23)
        .add_enum_check("period", [p.value for p in DayPeriod])
    )


def create_prices_validator() -> DataValidator:
    """Create pre-configured validator for wholesale price batches"""
    return (
        DataValidator("prices")
        .add_not_null_check("product_id")
        .add_not_null_check("date_id")
        .add_unique_check(["product_id", "date_id"])
        .add_positive_check("wholesale_price", allow_zero=False)
    )


def create_loss_rates_validator() -> DataValidator:
    """Create pre-configured validator for loss rate batches"""
    return (
        DataValidator("loss_rates")
        .add_not_null_check("product_id")
        .add_unique_check(["product_id"])
        .add_range_check("loss_rate", min_value=0, max_value=100)
    )


def create_sales_validator() -> DataValidator:
    """Create pre-configured validator for fact batches"""
    return (
        DataValidator("sales")
        .add_not_null_check("date_id")
        .add_not_null_check("hour_id")
        .add_not_null_check("product_id")
        .add_positive_check("quantity", allow_zero=False)
        .add_positive_check("unit_price", allow_zero=False)
        .add_positive_check("total_amount", allow_zero=False)
        .add_custom_check(
            "total_matches_quantity_price",
            _totals_match,
            "Line totals differ from quantity x unit price",
        )
    )


VALIDATOR_FACTORIES: Dict[str, Callable[[], DataValidator]] = {
    "categories": create_categories_validator,
    "products": create_products_validator,
    "calendar": create_calendar_validator,
    "hours": create_hours_validator,
    "prices": create_prices_validator,
    "loss_rates": create_loss_rates_validator,
    "sales": create_sales_validator,
}


def validate_batch(entity: str, rows: Sequence[Dict[str, Any]]) -> ValidationResult:
    """Run the entity's validator over an insert batch"""
    return VALIDATOR_FACTORIES[entity]().validate(batch_frame(rows))
