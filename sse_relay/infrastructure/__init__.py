"""
Infrastructure Module

Process-local storage used by the relay.
"""
