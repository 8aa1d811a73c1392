"""choomd - rule-based oom_score_adj daemon."""

__version__ = "0.1.0"
