"""
Database Management Scripts

This module contains utilities for database operations:
- Trails collection reset
"""
