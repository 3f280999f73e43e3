"""Project progress and analytics core.

Row trackers, the project lifecycle, analytics aggregation and the scoped
query layer. Everything here works on plain records; the HTTP layer only
translates requests into these calls.
"""
