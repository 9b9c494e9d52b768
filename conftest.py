"""
Root pytest configuration; keeps the repository root importable as "src".
"""


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that talk to a live socket server"
    )
