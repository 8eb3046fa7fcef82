"""
PR Comment Radar API - serves cached actionable PR comments.

Provides a FastAPI backend over the JSON cache written by the refresher,
plus a manual refresh trigger for the dashboard front end.
"""
