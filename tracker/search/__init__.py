from tracker.search.fuzzy import fuzzy_search, score_match

__all__ = ["fuzzy_search", "score_match"]
