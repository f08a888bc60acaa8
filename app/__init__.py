"""Stream Splicer Application

This package provides a streaming byte splicer and a small FastAPI
application that exposes its text front end over HTTP.

The application consists of:
- A main FastAPI app (main.py)
- The splicing library (stream_splicer)
"""
