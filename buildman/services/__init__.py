"""
Buildman Services.

The compiler stages, as pure functions over immutable inputs:
- configuration: raw order → BuildConfiguration per build number
- expansion: BuildConfiguration + catalog → BOM tree
- analysis: BOM tree → flattened, classified and indexed items
- tasks: BuildConfiguration → production and testing tasks
- procurement: BOM items + tracked records → procurement view
- workflow: stage order and workflow state transitions
- snapshot: the compiled order document

Persistence and locking live in buildman.adapters and buildman.service.
"""
