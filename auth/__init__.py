"""auth/ -- Authentication and authorization package for OceanOS.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/, submissions/, catalog/, or client/.
api/ imports from auth/, not the other way around.
"""
