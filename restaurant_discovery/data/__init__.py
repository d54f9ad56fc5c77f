"""Data models, configuration and errors"""
