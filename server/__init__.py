"""HTTP surface for SiteFoundry."""
