"""
Menswear Ops - back office client for a menswear hire and sales business

Customers, wedding/function orders, wedding-party members, the garment
catalog, outfits and measurements, all stored in Supabase.
"""

__version__ = "1.0.0"
