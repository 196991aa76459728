"""Starter concept pool used by ``intrdrm seed``."""

import logging
from typing import Mapping, Sequence

from intrdrm.db.gateway import DatastoreGateway

logger = logging.getLogger(__name__)

SEED_CONCEPTS: Mapping[str, Sequence[str]] = {
    "abstract": (
        "recursion", "emergence", "entropy", "symmetry", "duality",
        "infinity", "paradox", "causality", "determinism", "randomness",
    ),
    "technology": (
        "blockchain", "containers", "cryptography", "distributed systems", "edge computing",
        "microservices", "neural networks", "quantum computing", "serverless", "virtualization",
    ),
    "science": (
        "DNA replication", "black holes", "dark matter", "evolution", "gravitational waves",
        "immune system", "photosynthesis", "plate tectonics", "quantum entanglement", "thermodynamics",
    ),
    "psychology": (
        "anchoring", "cognitive dissonance", "confirmation bias", "dunning-kruger effect", "flow state",
        "imposter syndrome", "loss aversion", "mirror neurons", "neuroplasticity", "social proof",
    ),
    "philosophy": (
        "aesthetics", "dialectics", "epistemology", "existentialism", "nihilism",
        "ontology", "phenomenology", "solipsism", "stoicism", "utilitarianism",
    ),
    "mathematics": (
        "chaos theory", "combinatorics", "fractals", "game theory", "graph theory",
        "number theory", "prime numbers", "set theory", "tessellation", "topology",
    ),
    "physics": (
        "conservation of energy", "doppler effect", "higgs boson", "magnetism", "nuclear fusion",
        "relativity", "string theory", "superconductivity", "superposition", "wave-particle duality",
    ),
    "biology": (
        "apoptosis", "bioluminescence", "circadian rhythm", "epigenetics", "homeostasis",
        "metamorphosis", "microbiome", "mitosis", "phototropism", "symbiosis",
    ),
    "economics": (
        "compound interest", "creative destruction", "deadweight loss", "marginal utility", "moral hazard",
        "network effects", "opportunity cost", "price discrimination", "supply and demand",
        "tragedy of the commons",
    ),
    "systems": (
        "bottleneck", "coupling", "critical path", "feedback loops", "hierarchy",
        "load balancing", "modularity", "redundancy", "separation of concerns", "single point of failure",
    ),
    "language": (
        "etymology", "idiom", "metaphor", "onomatopoeia", "phonetics",
        "pragmatics", "prosody", "rhetoric", "semiotics", "syntax",
    ),
    "art": (
        "chiaroscuro", "counterpoint", "dissonance", "fugue", "golden ratio",
        "impressionism", "minimalism", "motif", "perspective", "synesthesia",
    ),
    "nature": (
        "albedo", "biodiversity", "biomagnification", "carbon cycle", "erosion",
        "keystone species", "mycorrhizal network", "succession", "trophic cascade", "watershed",
    ),
    "sociology": (
        "anomie", "bureaucracy", "cultural diffusion", "groupthink", "hegemony",
        "secularization", "social capital", "social stratification", "subculture", "urbanization",
    ),
    "behavior": (
        "discrimination", "extinction", "framing", "generalization", "habituation",
        "modeling", "priming", "reciprocity", "reinforcement", "shaping",
    ),
    "general": (
        "amplitude", "buffer", "catalyst", "crystallization", "diffusion",
        "elasticity", "equilibrium", "fermentation", "gradient", "inertia",
        "leverage", "momentum", "osmosis", "oxidation", "polarization",
        "resonance", "saturation", "threshold", "torque", "viscosity",
    ),
}


def iter_seed_concepts():
    for category, names in SEED_CONCEPTS.items():
        for name in names:
            yield {"name": name, "category": category}


async def seed_concepts(gateway: DatastoreGateway) -> int:
    """Insert the starter pool; concepts already present are left untouched."""
    added = await gateway.add_concepts(iter_seed_concepts())
    logger.info("Seeded %d concept(s)", added)
    return added


__all__ = ["SEED_CONCEPTS", "iter_seed_concepts", "seed_concepts"]
