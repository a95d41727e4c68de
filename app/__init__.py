"""ManoLingua application layer — settings, logging and pipeline wiring.

``core/`` holds the pipeline itself and never imports from here.
"""
