"""
Durable step execution for pipeline runs.

Each pipeline stage is wrapped in ``StepRunner.run_once(step_id, fn)``.
A step that already completed for this run returns its recorded result
without executing again. A step that raises records nothing, so the
stage is re-executed when the run is retried.

The default runner keeps results in memory for the lifetime of one run,
which is the scope of a single Lambda invocation.
"""

import logging
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class StepRunner:
    """
    Memoizing step executor scoped to one pipeline run.

    Example:
        >>> steps = StepRunner()
        >>> steps.run_once("get-all-users", lambda: ["a@x.com"])
        ['a@x.com']
        >>> steps.run_once("get-all-users", lambda: [])  # not re-executed
        ['a@x.com']
    """

    def __init__(self, run_id: Optional[str] = None):
        self.run_id = run_id or f"run-{uuid.uuid4()}"
        self._results: Dict[str, Any] = {}
        self._order: List[str] = []

    def run_once(self, step_id: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Execute fn once for this run and memoize its result.

        Args:
            step_id: Name of the stage, unique within the run
            fn: Callable producing the stage result
            *args, **kwargs: Passed through to fn

        Returns:
            The stage result (recorded or freshly computed)

        Raises:
            Whatever fn raises; nothing is recorded in that case
        """
        if not step_id:
            raise ValueError("step_id must be a non-empty string")

        if step_id in self._results:
            logger.info(f"[{self.run_id}] Step '{step_id}' already completed, using recorded result")
            return self._results[step_id]

        logger.info(f"[{self.run_id}] Step '{step_id}' started")
        start_time = time.time()

        result = fn(*args, **kwargs)

        self._results[step_id] = result
        self._order.append(step_id)
        logger.info(f"[{self.run_id}] Step '{step_id}' completed: {time.time() - start_time:.3f}s")
        return result

    def has_completed(self, step_id: str) -> bool:
        return step_id in self._results

    @property
    def completed_steps(self) -> List[str]:
        """Step ids in completion order."""
        return list(self._order)
