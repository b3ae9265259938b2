# ==============================================
# DML (operations over the record store)
# ==============================================
#
# Modules:
# --------
# - linker.py      → KeyMatchedLinker: link children to parents by match key
# - operations.py  → DmlExercises: the single-purpose insert / update /
#                    upsert / delete exercises
#
# ==============================================

from .linker import KeyMatchedLinker, LinkResult, link_by_matching_key, match_key
from .operations import DmlExercises

__all__ = [
    "KeyMatchedLinker",
    "LinkResult",
    "link_by_matching_key",
    "match_key",
    "DmlExercises",
]
