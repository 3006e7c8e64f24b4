"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across costing, batching and scaling.

Usage:
    from barcost.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    # Log a routine evaluation
    log_operation(
        logger,
        operation="calculate_recipe_cost",
        outcome="success",
        level=logging.DEBUG,
        recipe_id="rec_1",
        total_cost=2.10,
    )

    # Log a data anomaly
    log_operation(
        logger,
        operation="find_matching_ingredient",
        outcome="id_not_found",
        level=logging.WARNING,
        ingredient_id="ing_9",
    )
"""

import logging
from typing import Any


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger instance with the 'barcost.services' prefix.

    Example:
        >>> logger = get_service_logger(__name__)
        >>> logger.name
        'barcost.services.batch_scaling'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"barcost.services.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The context is passed via the 'extra' parameter for structured logging.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "calculate_batch_metrics")
        outcome: Outcome description (e.g., "success", "fallback", "id_not_found")
        level: Log level (default: INFO). Use DEBUG for per-call evaluations.
        **context: Additional context fields (recipe IDs, scale factors, etc.)
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
