# dragonfly2imgproxy/__init__.py
"""
Keep this file minimal so 'dragonfly2imgproxy' is always a proper package.

Do NOT import submodules here (e.g., don't import main).
Tests and runtime should import from 'dragonfly2imgproxy.main' directly:
    from dragonfly2imgproxy.main import create_app
And Uvicorn should use:
    uvicorn --factory dragonfly2imgproxy.main:create_app
"""
