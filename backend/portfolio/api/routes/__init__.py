"""Route Modules — one file per resource/concern.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - Mutating routes depend on require_session(<Operation>)
    - Backend calls go through track_operation with a per-resource operation name
"""
