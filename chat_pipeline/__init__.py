"""
Chat pipeline for speak-chat-demo.

Utterance processing: speech result -> transcript -> command dispatch -> reply suggestions.
No speech recognition, rendering or device control here; those are
collaborators reached through small interfaces (rewriter provider, action
launcher, render sink).

- Every event is processed to completion before the next one
- No error from a collaborator ends a chat session
- All behavior is observable via structured events and JSON logs
"""
