"""
=============================================================================
PIPELINE
=============================================================================

A pipeline is an ordered list of steps run before the router. Each step
takes the conn and returns it, possibly with headers added, the model
changed, or a response sent.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     PIPELINE WITH SHORT-CIRCUIT                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   conn ──► [ cors ] ──► [ auth ] ──► [ ... ] ──► router              │
    │                            │                                         │
    │                            │ no Authorization header                 │
    │                            ▼                                         │
    │                       respond(401)                                   │
    │                            │                                         │
    │                            └──────────► conn returned as-is          │
    │                                         (remaining steps skipped,    │
    │                                          router never runs)          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Before each step the pipeline checks ``conn.is_sent``. The first step that
responds ends the run; every step after it is skipped. No step is skipped
for any other reason.

Unlike an onion-style middleware chain there is no "after" phase: steps do
their work on the way in, and headers they add to the pending response
survive into whatever response is eventually sent.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional
import logging

from ..conn import Conn


logger = logging.getLogger(__name__)


class Step(ABC):
    """
    Abstract base class for pipeline steps.

    =========================================================================
    THE STEP CONTRACT
    =========================================================================

        class MyStep(Step):
            def __call__(self, conn: Conn) -> Conn:
                if not self.is_valid(conn):
                    return conn.respond(400, "Bad request")   # short-circuit
                conn.set_header("X-Checked", "yes")
                return conn

    A step must not perform observable I/O; it only changes the conn.

    =========================================================================
    """

    @abstractmethod
    def __call__(self, conn: Conn) -> Conn:
        """Process the conn and return it."""

    @property
    def name(self) -> str:
        """Step name for logging."""
        return self.__class__.__name__


class Pipeline:
    """
    Ordered list of steps with short-circuit-on-response semantics.

    Usage:
        pipeline = Pipeline()
        pipeline.add(CORSStep(config.cors))
        pipeline.add(AuthStep(config.auth))

        conn = pipeline.run(conn)
        if not conn.is_sent:
            router.dispatch(conn)
    """

    def __init__(self):
        self._steps: List[Step] = []

    def add(self, step: Step) -> "Pipeline":
        """
        Append a step. Steps run in the order added.

        Returns:
            Self for method chaining
        """
        self._steps.append(step)
        logger.debug(f"Added step: {step.name}")
        return self

    def use(self, *steps: Step) -> "Pipeline":
        """Append several steps at once."""
        for step in steps:
            self.add(step)
        return self

    def run(self, conn: Conn) -> Conn:
        """
        Apply each step in order until one of them sends a response.

        Each step receives the conn returned by the previous one.
        """
        for step in self._steps:
            if conn.is_sent:
                break
            conn = step(conn)
            if conn.is_sent:
                logger.debug(
                    f"[{conn.id}] {step.name} responded {int(conn.response.status)}, "
                    f"skipping remaining steps"
                )
        return conn

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self):
        return iter(self._steps)


class FunctionStep(Step):
    """
    Wraps a plain function as a step.

    Usage:
        pipeline.add(FunctionStep(lambda conn: conn.set_header("X-A", "1"), name="tag"))
    """

    def __init__(self, func: Callable[[Conn], Conn], name: Optional[str] = None):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, conn: Conn) -> Conn:
        return self._func(conn)

    @property
    def name(self) -> str:
        return self._name


def step(func: Callable[[Conn], Conn]) -> FunctionStep:
    """
    Decorator to create a step from a function.

        @step
        def tag(conn):
            return conn.set_header("X-Tagged", "true")

        pipeline.add(tag)
    """
    return FunctionStep(func)
