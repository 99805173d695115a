"""Reliability — circuit breakers for remote sessions."""
