"""Regulatory Authorization Engine"""
