"""Distortr - FastAPI HTTP layer.

Modules
-------
main
    Application factory, route handlers and the ``main()`` CLI entry point.
models
    Pydantic response models.
"""
