"""client/ -- HTTP client for the OceanOS API with transparent token refresh.

Layer rule: client/ imports only stdlib, requests and core/. It never imports
from api/, auth/, submissions/ or catalog/: it speaks to the server over HTTP
and knows the wire format only.
"""
