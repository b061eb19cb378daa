"""
Normalize package: typed records and the decoders that build them from Redmine JSON.
"""
