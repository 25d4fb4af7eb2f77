"""tasks/ -- Per-user task records.

Layer rule: tasks/ imports only stdlib and third-party libraries. Ownership is
expressed as a plain user id; tasks/ never imports from auth/ or api/.
"""
