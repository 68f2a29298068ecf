"""Error taxonomy for the monoforge generator.

Errors fall into two groups:

* Planning / validating errors (``ValidationError``, ``GraphError``,
  ``ConfigError``) are fatal.  They are raised before anything touches the
  filesystem and map to exit code 1.
* Writing errors (``WriteError``) and ``AdapterError`` are recorded per path in
  the run report instead of aborting the run.
"""

from __future__ import annotations

from collections.abc import Sequence


class MonoforgeError(Exception):
    """Base exception for all monoforge errors.

    ``subject`` is the node id, config id or path the error is about, so
    reports can point at the offending item without parsing the message.
    """

    def __init__(self, message: str, subject: str = "") -> None:
        self.message = message
        self.subject = subject
        super().__init__(message)


# ---------------------------------------------------------------------------
# Validation (ChoiceSet shape, answers file, catalog lookups)
# ---------------------------------------------------------------------------


class ValidationError(MonoforgeError):
    """The ChoiceSet or answers file is not acceptable."""


class InvalidChoiceSet(ValidationError):
    """A ChoiceSet field has an invalid value or combination of values."""


class UnknownField(ValidationError):
    """An answers file contains a key that does not exist on the ChoiceSet."""

    def __init__(self, field_path: str) -> None:
        self.field_path = field_path
        super().__init__(f"Unknown field in answers file: '{field_path}'", subject=field_path)


class UnknownTemplate(ValidationError):
    """No template bundle is registered for a (category, choice) pair."""

    def __init__(self, category: str, choice: str, node_id: str = "") -> None:
        self.category = category
        self.choice = choice
        where = f" (requested by {node_id})" if node_id else ""
        super().__init__(
            f"No template bundle registered for {category} '{choice}'{where}",
            subject=node_id or f"{category}:{choice}",
        )


class IncompatibleTemplate(ValidationError):
    """A template bundle cannot be applied to the node that requested it.

    Either the node kind is unsupported or the bundle clashes with another
    bundle on the same node (``reason`` says which).
    """

    def __init__(self, bundle_id: str, node_id: str, node_kind: str, reason: str = "") -> None:
        self.bundle_id = bundle_id
        self.node_id = node_id
        if reason:
            message = f"Template bundle '{bundle_id}' cannot be used on {node_id}: {reason}"
        else:
            message = f"Template bundle '{bundle_id}' does not support {node_kind} nodes ({node_id})"
        super().__init__(message, subject=node_id)


# ---------------------------------------------------------------------------
# Workspace graph
# ---------------------------------------------------------------------------


class GraphError(MonoforgeError):
    """The workspace dependency graph is invalid."""


class InvalidEdge(GraphError):
    """An app node declared a dependency on another app node."""

    def __init__(self, source: str, target: str) -> None:
        self.source = source
        self.target = target
        super().__init__(
            f"Invalid dependency {source} -> {target}: apps may only depend on packages",
            subject=source,
        )


class UnknownNode(GraphError):
    """A dependency references a node that is not part of the graph."""

    def __init__(self, source: str, target: str) -> None:
        self.source = source
        self.target = target
        super().__init__(
            f"{source} depends on '{target}', which is not a node in this workspace",
            subject=source,
        )


class CyclicDependency(GraphError):
    """The dependency graph contains a cycle.

    ``cycle`` starts at the lexicographically smallest participating node id
    so the message is identical across runs.
    """

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        path = " -> ".join([*self.cycle, self.cycle[0]]) if self.cycle else ""
        super().__init__(f"Cyclic dependency detected: {path}", subject=self.cycle[0] if self.cycle else "")


# ---------------------------------------------------------------------------
# Config inheritance
# ---------------------------------------------------------------------------


class ConfigError(MonoforgeError):
    """Config inheritance chains cannot be resolved."""


class ConfigConflict(ConfigError):
    """Two facets of one node supply an override for the same config category."""

    def __init__(self, node_id: str, category: str, facets: Sequence[str]) -> None:
        self.node_id = node_id
        self.category = category
        self.facets = list(facets)
        super().__init__(
            f"{node_id}: conflicting {category} config overrides from "
            + " and ".join(f"'{f}'" for f in self.facets),
            subject=node_id,
        )


class MissingBaseConfig(ConfigError):
    """A config chain link (usually the category base) is not in the catalog."""

    def __init__(self, category: str, config_id: str = "", node_id: str = "") -> None:
        self.category = category
        self.config_id = config_id
        what = f"config '{config_id}'" if config_id else f"base {category} config"
        where = f" required by {node_id}" if node_id else ""
        super().__init__(f"Missing {what}{where}", subject=node_id or config_id or category)


# ---------------------------------------------------------------------------
# Writing / external collaborators
# ---------------------------------------------------------------------------


class WriteError(MonoforgeError):
    """A single file could not be rendered or written."""


class AdapterError(MonoforgeError):
    """The package manager invocation failed."""

    def __init__(self, message: str, command: str = "", stderr: str = "") -> None:
        self.command = command
        self.stderr = stderr
        super().__init__(message, subject=command)
