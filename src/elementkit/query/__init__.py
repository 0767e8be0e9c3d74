"""
Element query compilation: criteria parameters, relation and structure filters, and
turning result rows into element models.
"""
