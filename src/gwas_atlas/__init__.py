"""gwas-atlas: significance-filtered GWAS summary statistics over tabix."""

__version__ = "0.1.0"
