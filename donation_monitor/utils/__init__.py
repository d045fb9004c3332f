"""Small shared helpers: address checks and wei/ether formatting."""
