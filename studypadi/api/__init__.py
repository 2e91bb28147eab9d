"""HTTP surface for StudyPadi: REST routes, WebSocket progress, middleware."""
