"""
umiconsensus collapses aligned, barcode tagged sequencing reads which share a locus, strand and molecular barcode
into a single error-corrected consensus read
"""
__version__ = '0.1.0'
