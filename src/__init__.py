"""Credit Report Consolidation System.

Turns OCR output of scanned credit bureau reports into structured entities
(personal information, accounts, inquiries, negative items), consolidates
competing extraction attempts, and flags uncertain results for review.
"""
