"""Upstream HTTP, API and page-fetching clients"""
