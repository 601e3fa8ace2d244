"""OSRS Goal Tracker - single-table DynamoDB storage for users, characters, goals and progress"""

__version__ = "1.0.0"
