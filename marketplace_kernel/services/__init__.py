"""Write-side kernel services.  Each flushes within the caller's transaction."""
