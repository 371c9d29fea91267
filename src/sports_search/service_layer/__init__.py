"""Service layer - the search orchestrator facade."""
