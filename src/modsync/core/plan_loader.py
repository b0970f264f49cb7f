"""Plan Loader - read and validate update plan documents."""

import json
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from ..models.plan import UpdatePlan
from ..utils.exceptions import PlanValidationError

logger = structlog.get_logger(__name__)


def parse_plan(data: Any) -> UpdatePlan:
    """
    Validate an already-decoded plan document.

    Args:
        data: Decoded JSON value

    Returns:
        UpdatePlan instance

    Raises:
        PlanValidationError: If the document does not match the plan shape
    """
    if not isinstance(data, dict):
        raise PlanValidationError(f"Plan must be a JSON object, got {type(data).__name__}")

    try:
        plan = UpdatePlan.model_validate(data)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise PlanValidationError(f"Invalid update plan: {details}", original_error=e) from e

    if plan.overrides_total > len(plan.overrides):
        logger.warning(
            "overridesTotal exceeds number of overrides",
            overrides_total=plan.overrides_total,
            overrides=len(plan.overrides),
        )
    return plan


def load_plan(plan_path: Path) -> UpdatePlan:
    """
    Load an update plan from a JSON file.

    Raises:
        PlanValidationError: If the file cannot be read or is not a valid plan
    """
    try:
        data = json.loads(plan_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise PlanValidationError(f"Cannot read plan file {plan_path}: {e}", e) from e
    except json.JSONDecodeError as e:
        raise PlanValidationError(f"Invalid JSON in plan file {plan_path}: {e}", e) from e

    plan = parse_plan(data)
    logger.info("Loaded update plan", path=str(plan_path), total=plan.total)
    return plan
