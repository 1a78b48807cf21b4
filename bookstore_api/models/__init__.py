"""Data models for the bookstore API.

This package contains Pydantic models for request/response validation
and the mapping between MongoDB documents and API payloads.
"""
