"""Test suite for the authz package.

Test structure:
- unit/: Unit tests - domain logic and services with mocked collaborators
- integration/: Integration tests - repositories, audit and end-to-end flows
  on SQLite, and the Clerk client against a mocked HTTP transport
"""
