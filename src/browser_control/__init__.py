"""
Browser Control

Control plane for named, concurrent headless browser sessions with
persisted auth profiles, scripted chunks, flow replay and page inspection.
"""

__version__ = "0.1.0"
