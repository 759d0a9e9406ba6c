"""
Hike Planner Scripts Package

This package contains operational scripts, organized into subdirectories:

- database/: Database management utilities (collection reset)
"""
