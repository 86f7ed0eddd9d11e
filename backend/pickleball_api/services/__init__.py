"""
Services Layer

Tournament business logic that:
- Accepts domain inputs (IDs, sessions, scores)
- Returns domain outputs (models, dataclasses, dicts)
- Does NOT depend on HTTP request/response objects
- Raises ApiError subclasses for reportable failures
"""
