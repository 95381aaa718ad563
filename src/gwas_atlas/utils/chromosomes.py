"""Chromosome label helpers."""

AUTOSOMES = tuple(str(i) for i in range(1, 23))


def normalize_chromosome(chrom: str) -> str:
    """Strip whitespace and any 'chr' prefix, so 'chr7' and '7' compare equal."""
    chrom = chrom.strip()
    if chrom[:3].lower() == "chr":
        return chrom[3:]
    return chrom
