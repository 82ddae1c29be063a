"""Regulatory Authorization Engine - Services"""
