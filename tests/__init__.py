"""Test suite for the Ollama gateway.

Unit tests live under unit/, grouped by component; in-memory fakes for the
WebSocket transport and the Ollama backend live in helpers/.
"""
