"""
Services layer - Business logic goes here.
Keep services focused on specific domains (problems, users, AI, SMS, uploads).

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Services raise app.core.errors exceptions; routes map them to HTTP
- Slow external calls (AI, SMS) never run on the request path at submission
"""
