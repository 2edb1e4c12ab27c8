"""
Pydantic schemas for requests, responses and raw provider payloads.
"""
