"""Element types shipped with elementkit."""
