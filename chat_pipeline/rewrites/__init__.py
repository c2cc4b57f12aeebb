"""
Rewrite tables requested per (language, service) combo.

The chat session asks for the "Base" and "Commands" tables, in that order.
See chat_pipeline.rewriters for the rule format.
"""
