"""
award_backend
Progression & evidence-review engine for the schools sustainability award
(Inspire -> Investigate -> Act).
"""
__version__ = "1.0.0"
