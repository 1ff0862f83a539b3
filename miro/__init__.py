"""Miro - a wellness companion built on Streamlit."""

__version__ = "0.1.0"
