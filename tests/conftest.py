"""
Shared test fixtures and configuration for the Hike Planner test suite.

This file contains pytest fixtures that can be used across all test modules.
Fixtures defined here are automatically available to all test files.
"""

import os
from collections import namedtuple
from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

# Load test environment variables (if any)
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

DocRow = namedtuple("DocRow", ["doc"])


@pytest.fixture(autouse=True)
def setup_test_environment():
    """
    Set up test environment variables.

    This fixture automatically runs before each test to ensure the test
    environment is properly configured.
    """
    # Set test environment variables if not already set
    if not os.getenv("POSTGRES_PASSWORD"):
        os.environ["POSTGRES_PASSWORD"] = "test_password"

    yield

    # Clean up test environment variables after test
    if os.getenv("POSTGRES_PASSWORD") == "test_password":
        del os.environ["POSTGRES_PASSWORD"]


@pytest.fixture
def mock_db_engine():
    """
    Provide a mock SQLAlchemy engine.

    Returns a Mock engine whose connect() and begin() context managers share
    one mock connection. Use this to avoid real database connections.
    """
    mock_engine = MagicMock()
    mock_connection = MagicMock()
    mock_result = MagicMock()

    # Configure connection context managers
    for factory in (mock_engine.connect, mock_engine.begin):
        factory.return_value.__enter__.return_value = mock_connection
        factory.return_value.__exit__.return_value = None

    # Configure execute to return mock result
    mock_connection.execute.return_value = mock_result
    mock_result.fetchall.return_value = []
    mock_result.fetchone.return_value = None
    mock_result.scalar.return_value = 0

    return mock_engine


@pytest.fixture
def sample_trail():
    """
    Provide a complete trail document as stored in the trails collection.
    """
    return {
        "id": "3f1c9a52-0d6e-4c1b-9a0e-2f3c4d5e6f70",
        "partitionKey": "White Mountains",
        "name": "Franconia Ridge Loop",
        "description": "A spectacular loop over two 4000-foot peaks with ridge walking.",
        "location": {
            "region": "White Mountains",
            "park": "Franconia Notch State Park",
            "country": "US",
            "coordinates": {
                "start": {"longitude": -71.6447, "latitude": 44.1684},
                "end": {"longitude": -71.6447, "latitude": 44.1684},
                "waypoints": [],
            },
        },
        "characteristics": {
            "difficulty": "advanced",
            "distance": 14.3,
            "duration": {"min": 6, "max": 7},
            "elevationGain": 1143,
            "elevationProfile": [],
            "trailType": "loop",
            "surface": ["rock", "dirt"],
        },
        "features": {
            "scenicViews": True,
            "waterFeatures": True,
            "wildlife": ["moose", "black bear"],
            "seasonality": {"bestMonths": [7, 8, 9], "accessibleMonths": [5, 6, 7, 8, 9, 10]},
        },
        "safety": {
            "riskLevel": 3,
            "commonHazards": ["exposure", "rapid weather change"],
            "requiresPermit": False,
            "emergencyContacts": [],
        },
        "amenities": {"parking": True, "restrooms": True, "camping": False, "drinkingWater": False},
        "ratings": {"average": 4.8, "count": 2156, "breakdown": {"5": 1800, "4": 300, "3": 56}},
        "isActive": True,
        "createdAt": "2024-05-01T12:00:00+00:00",
        "updatedAt": "2024-05-01T12:00:00+00:00",
    }


@pytest.fixture
def sample_trails(sample_trail):
    """
    Provide two trail documents with different regions and difficulty levels.
    """
    second = {
        **sample_trail,
        "id": "8a7b6c5d-4e3f-2a1b-0c9d-8e7f6a5b4c3d",
        "partitionKey": "Monadnock Region",
        "name": "White Dot Trail",
        "description": "The most popular route up Mount Monadnock.",
        "location": {**sample_trail["location"], "region": "Monadnock Region", "park": "Monadnock State Park"},
        "characteristics": {
            **sample_trail["characteristics"],
            "difficulty": "intermediate",
            "distance": 6.1,
            "trailType": "out-and-back",
        },
        "ratings": {"average": 4.3, "count": 1698, "breakdown": {}},
    }
    return [sample_trail, second]


@pytest.fixture
def doc_rows():
    """Wrap trail documents in row objects exposing a ``doc`` attribute."""

    def _rows(documents):
        return [DocRow(doc=document) for document in documents]

    return _rows
