"""
Django Buildman - Configuration-to-production-plan compiler.

Turns a configured sink order into a classified BOM, production and
testing task lists, a procurement view and a persisted order snapshot.

Usage:
    from buildman import build, BuildError

    result = build.compile(raw_order)
    result.document["billOfMaterials"]["criticalComponents"]

    for plan in result.task_plans:
        build.create_tasks(result.order_id, plan)

    build.advance(result.order_id, "BOM_REVIEW")
"""

from buildman.exceptions import BuildError


def __getattr__(name):
    """Lazy import to avoid AppRegistryNotReady errors."""
    if name in ("build", "Build"):
        from buildman.service import Build

        return Build
    if name == "CompileResult":
        from buildman.results import CompileResult

        return CompileResult
    if name == "TaskPlan":
        from buildman.results import TaskPlan

        return TaskPlan
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["build", "Build", "BuildError", "CompileResult", "TaskPlan"]
__version__ = "0.1.0"
