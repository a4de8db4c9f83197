"""Key pool package: index-based secret resolution over configured keys."""
