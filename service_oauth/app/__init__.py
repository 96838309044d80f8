"""
Access token login package.

This package exposes the FastAPI application that logs users in with an
OAuth access token obtained by the client out of band:

- app.main: Application entrypoint that wires the registry, stores and routes.
- app.dispatcher: Login-handler chain member resolving provider handlers.
- app.registry: Service name to access token handler table.
- app.custom: Handler and HTTP client for custom OAuth providers.
- app.configuration: Provider configuration storage.
- app.accounts: Create-or-update of local users from service data.

Design notes:
- Module import must not perform network calls. All IO happens in the
  handler during a login attempt.
- Use the shared/ utilities for logging, metrics, config, and errors.
- Registration happens once in the composition root; the registry is
  frozen before requests are served.
"""
