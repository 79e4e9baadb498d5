"""
ApplyOS - AI-assisted job application tracker.

Package layout:
- api/       : FastAPI app, routers and request dependencies
- core/      : Configuration, logging, auth, rate limiting, validation
- database/  : SQLAlchemy models and session management
- llm/       : Gemini client, model fallback and prompts
- services/  : Business logic (applications, documents, AI, cron jobs)
- analytics/ : Dashboard metrics, Sankey flow and Plotly figures
- capture/   : Job page detection and extraction for the browser extension
- models/    : Pydantic request/response schemas
"""

__version__ = "1.0.0"
