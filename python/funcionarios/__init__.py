# -*- encoding: utf-8 -*-
"""
funcionarios package - employee CRUD form on IndexedDB for PyScript/Pyodide
"""

__version__ = "0.1.0"
