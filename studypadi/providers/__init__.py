"""Concrete adapters for the interfaces in studypadi/interfaces/."""
