"""catalog/ -- In-memory marine reference data: species, observations, sensors.

Layer rule: catalog/ imports only stdlib and core/.
"""
