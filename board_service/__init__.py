"""
HTTP service for the job board: score edits, board priorities, credits and
the credit-gated AI operations.
"""
