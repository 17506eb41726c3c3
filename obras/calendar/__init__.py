"""
Calendar view of project forecasts.
"""
