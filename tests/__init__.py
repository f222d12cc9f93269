"""
Test Suite for MCP Dispatch

Test Structure:
- unit/test_config.py: Settings, Catalog and Configuration
- unit/test_engine.py: Bundled MCP engine method handling
- unit/test_dispatcher.py: Dispatch pipeline, normalization and error containment
- unit/test_http_app.py: End-to-end HTTP behavior through FastAPI
- unit/test_main.py: Bootstrap, logging and configuration loading

Running Tests:
    pytest                    # Run all tests
    pytest -v                 # Verbose output
    pytest -m http            # HTTP application tests only
"""
