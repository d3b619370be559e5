"""Authorization helpers for web applications.

This package separates two concerns that applications usually tangle together:

- Policies: objects (or modules) exposing ``authorize(action, actor, resource)``
  which return an ``Allowed`` or ``Denied(reason)`` outcome
- Authorization stages: request pipeline stages which find the current actor
  in the request context and hand the request to one of two application
  callbacks, depending on whether an actor is present

The two are deliberately independent. A stage calls into a policy only if the
application's ``handle_authorization`` callback chooses to.
"""
