"""Build Graph.

A static dependency graph of named build steps. The graph is ordered
topologically before anything runs; the first failing step halts the run and
every step that has not run yet is reported as skipped, so consumers never
see a stale or partial native artifact.

Standard wiring (BuildGraphWirer.wire):

    compileNatives
        ├── processResources
        ├── package
        └── test
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set

COMPILE_NATIVES = "compileNatives"
PROCESS_RESOURCES = "processResources"
PACKAGE = "package"
TEST = "test"


class BuildGraphError(Exception):
    """Raised for malformed graphs: duplicates, unknown steps, cycles."""

    pass


class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class BuildStep:
    """A node in the build graph."""

    name: str
    action: Callable[[], object]
    depends_on: Set[str] = field(default_factory=set)


@dataclass
class StepOutcome:
    name: str
    status: StepStatus
    error: Optional[Exception] = None
    duration: float = 0.0


@dataclass
class GraphResult:
    """Outcomes of one graph run, in execution order."""

    outcomes: Dict[str, StepOutcome] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return all(o.status is StepStatus.SUCCEEDED for o in self.outcomes.values())

    @property
    def failed_step(self) -> Optional[StepOutcome]:
        for outcome in self.outcomes.values():
            if outcome.status is StepStatus.FAILED:
                return outcome
        return None

    def status(self, name: str) -> StepStatus:
        return self.outcomes[name].status

    def executed(self) -> List[str]:
        """Names of steps whose action actually ran."""
        return [o.name for o in self.outcomes.values() if o.status is not StepStatus.SKIPPED]


class BuildGraph:
    """Named steps plus dependency edges.

    Example usage:
        graph = BuildGraph()
        graph.add_step(BuildStep(COMPILE_NATIVES, compile_natives))
        graph.add_step(BuildStep(PACKAGE, package))
        BuildGraphWirer.wire(graph)
        result = graph.execute()
    """

    def __init__(self) -> None:
        self._steps: Dict[str, BuildStep] = {}

    @property
    def steps(self) -> List[BuildStep]:
        return list(self._steps.values())

    def add_step(self, step: BuildStep) -> BuildStep:
        if step.name in self._steps:
            raise BuildGraphError(f"Duplicate build step: {step.name}")
        self._steps[step.name] = step
        return step

    def get_step(self, name: str) -> BuildStep:
        try:
            return self._steps[name]
        except KeyError:
            raise BuildGraphError(f"Unknown build step: {name}") from None

    def add_dependency(self, name: str, depends_on: str) -> None:
        """Declare that step ``name`` runs only after ``depends_on`` succeeded."""
        step = self.get_step(name)
        self.get_step(depends_on)
        if name == depends_on:
            raise BuildGraphError(f"Build step cannot depend on itself: {name}")
        step.depends_on.add(depends_on)

    def topological_order(self) -> List[str]:
        """
        Order steps so every step follows its dependencies.

        Ties keep insertion order.

        Raises:
            BuildGraphError: On an unknown dependency or a cycle
        """
        in_degree: Dict[str, int] = {}
        for step in self._steps.values():
            for dep in step.depends_on:
                if dep not in self._steps:
                    raise BuildGraphError(f"Step '{step.name}' depends on unknown step '{dep}'")
            in_degree[step.name] = len(step.depends_on)

        ready = deque(name for name, degree in in_degree.items() if degree == 0)
        order: List[str] = []
        while ready:
            name = ready.popleft()
            order.append(name)
            for step in self._steps.values():
                if name in step.depends_on:
                    in_degree[step.name] -= 1
                    if in_degree[step.name] == 0:
                        ready.append(step.name)

        if len(order) != len(self._steps):
            cyclic = sorted(name for name, degree in in_degree.items() if degree > 0)
            raise BuildGraphError(f"Dependency cycle between steps: {', '.join(cyclic)}")
        return order

    def execute(self) -> GraphResult:
        """
        Run every step in topological order.

        A step runs only if all of its dependencies succeeded. After the
        first failure no further step runs.

        Returns:
            GraphResult with one outcome per step

        Raises:
            BuildGraphError: If the graph is malformed (nothing is run)
        """
        order = self.topological_order()
        result = GraphResult()
        halted = False

        for name in order:
            step = self._steps[name]
            deps_ok = all(
                result.outcomes[dep].status is StepStatus.SUCCEEDED for dep in step.depends_on
            )
            if halted or not deps_ok:
                logging.info(f"Skipping step '{name}'")
                result.outcomes[name] = StepOutcome(name, StepStatus.SKIPPED)
                continue

            logging.info(f"Running step '{name}'")
            start = time.time()
            try:
                step.action()
            except Exception as e:
                logging.error(f"Step '{name}' failed: {e}")
                result.outcomes[name] = StepOutcome(
                    name, StepStatus.FAILED, error=e, duration=time.time() - start
                )
                halted = True
                continue

            result.outcomes[name] = StepOutcome(
                name, StepStatus.SUCCEEDED, duration=time.time() - start
            )

        return result


class BuildGraphWirer:
    """Declares that native-build consumers depend on the native build."""

    CONSUMERS = (PROCESS_RESOURCES, PACKAGE, TEST)

    @staticmethod
    def wire(
        graph: BuildGraph,
        native_step: str = COMPILE_NATIVES,
        consumers: Iterable[str] = CONSUMERS,
    ) -> BuildGraph:
        """Make every consumer step depend on the native step.

        Raises:
            BuildGraphError: If the native step or a consumer is not in the graph
        """
        graph.get_step(native_step)
        for consumer in consumers:
            graph.add_dependency(consumer, native_step)
        return graph
