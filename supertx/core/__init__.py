"""
Supertransaction orchestration core: instructions, composability, quotes,
signing and tracking.
"""
