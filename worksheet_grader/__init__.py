"""
Worksheet Grader - autograding for classroom worksheets.

This package scores students' submitted answers against a worksheet's
authored answer key across several question types, awarding partial
credit where the type allows it and flagging ambiguous short answers
for manual review.
"""

__version__ = "1.0.0"
__author__ = "Worksheet Grader Team"
