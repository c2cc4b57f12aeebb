"""
Conversational context tables.

Each file holds a top-level "contexts" list; every item defines:
- id: context identifier (unique within the file)
- phrases: trigger phrases, matched by exact string equality
- replies: suggested replies offered when a phrase is heard
"""
