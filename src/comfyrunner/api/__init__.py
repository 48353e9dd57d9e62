"""ComfyUI Job Runner — host-facing layer.

This package contains the FastAPI application, Pydantic request/response
models, and the declarative node description for the automation host.

Modules
-------
main
    FastAPI application with all route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for API request and response validation.
node
    Node description (parameters, credential type) and the host's execute
    hook.
"""
