"""Routers for the joint stream API"""
