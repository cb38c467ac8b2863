"""State/store layer.

Holds the single authoritative attendance snapshot that the realtime
gateway and the query endpoint read.
"""
