"""submissions/ -- Data-submission store and government approval workflow.

Layer rule: submissions/ imports from core/ and auth.models only.
It does NOT import from api/, catalog/, or client/.
"""
