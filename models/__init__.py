from .insight_dismissal import InsightDismissal
