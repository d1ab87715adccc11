"""
BreakBench v0.1.0

Immutable simulation context.

A SimulationContext is built once per run (from the YAML configuration plus
command-line overrides) and handed to every component. Nothing in the
simulation reads process-wide mutable state.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..exceptions import ConfigurationError
from ..utils.intervals import ReferenceInterval
from .schema import validate_config

logger = logging.getLogger(__name__)

_LOCUS_RE = re.compile(r'^(?P<chrom>[^:\s]+):(?P<start>\d+)-(?P<end>\d+)$')


# ============================================================================
#                           PARSING HELPERS
# ============================================================================

def parse_rate_list(value: Union[None, str, Sequence[float]]) -> Tuple[float, ...]:
    """
    Parse a comma-separated list of numbers ("0.01,0.05").
    
    Empty input gives an empty tuple; anything non-numeric is fatal.
    
    Raises:
        ConfigurationError: If an entry cannot be converted
    """
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        items = list(value)
    else:
        items = [v for v in str(value).split(',') if v.strip()]
    
    rates = []
    for item in items:
        try:
            rates.append(float(item))
        except (TypeError, ValueError):
            raise ConfigurationError(f"Could not convert {item!r} to number")
    return tuple(rates)


def parse_region(spec: Optional[str]) -> ReferenceInterval:
    """
    Parse a region given as a BED file or a samtools-style locus.
    
    BED coordinates are taken as-is (0-based, half-open); the first record
    is used. Loci are 1-based inclusive ("chr17:7,565,721-7,575,000").
    
    Raises:
        ConfigurationError: If no region is given or it cannot be parsed
    """
    if not spec:
        raise ConfigurationError("Must input a region to run on")
    
    path = Path(spec)
    if path.is_file():
        with open(path) as f:
            for line in f:
                if not line.strip() or line.startswith(('#', 'track', 'browser')):
                    continue
                fields = line.split()
                if len(fields) < 3:
                    raise ConfigurationError(f"Malformed BED line in {path}: {line.strip()}")
                try:
                    return ReferenceInterval(fields[0], int(fields[1]), int(fields[2]))
                except ValueError as e:
                    raise ConfigurationError(f"Malformed BED line in {path}: {line.strip()}") from e
        raise ConfigurationError(f"No regions found in {path}")
    
    match = _LOCUS_RE.match(spec.replace(',', '').strip())
    if not match:
        raise ConfigurationError(
            f"Can't parse the region '{spec}'. Input as BED file or samtools style string (chr:start-end)"
        )
    start = int(match.group('start'))
    end = int(match.group('end'))
    if start < 1 or end < start:
        raise ConfigurationError(f"Invalid region coordinates: {spec}")
    return ReferenceInterval(match.group('chrom'), start - 1, end)


def resolve_seed(seed: Optional[int]) -> int:
    """Seed 0 / None means 'seed from the clock'."""
    if not seed:
        seed = int(time.time())
        logger.info(f"No seed given, using clock seed {seed}")
    return int(seed)


def _settings(cls, section: str, values: Dict[str, Any]):
    """Build a settings dataclass, rejecting unknown keys."""
    try:
        return cls(**values)
    except TypeError as e:
        raise ConfigurationError(f"Invalid '{section}' section: {e}") from e


# ============================================================================
#                           CONTEXT
# ============================================================================

@dataclass(frozen=True)
class InjectorSettings:
    """Parameters of the genome mutation injector."""
    num_rearrangements: int = 10
    num_indels: int = 10
    donor_min_size: int = 50
    donor_max_size: int = 500
    indel_min_size: int = 1
    indel_max_size: int = 20
    padding: int = 5
    max_attempts: int = 10000
    max_edit_retries: int = 100


@dataclass(frozen=True)
class CorrectionSettings:
    """Parameters of the k-mer corrector."""
    k_size: int = 21
    min_kmer_freq: int = 3
    max_corrections: int = 10
    max_passes: int = 10


@dataclass(frozen=True)
class AssemblySettings:
    """Parameters passed through to the assembler engine."""
    command: str = 'fml-asm -l {min_overlap} {reads}'
    min_overlap: int = 35
    error_rate_corrected: float = 0.0
    error_rate_uncorrected: float = 0.05
    aligner_preset: str = 'sr'


@dataclass(frozen=True)
class SimulationContext:
    """
    Everything a run needs, fixed at start-up.
    
    Attributes:
        seed: Resolved RNG seed
        read_length: Read length L
        coverages / snv_rates / ins_rates / del_rates: Sweep axes
        insert_mean / insert_sd: Paired-end insert size (sim-breaks)
        paired_insert_mean / paired_insert_sd: Insert size of the paired set
            drawn alongside the single-end reads in the assembly benchmark
        correction_modes: Correction on/off values to sweep
        num_runs: Trials per sweep cell
        region: Interval to operate on (None until resolved for a mode)
        output_dir / string_id: Output location and file prefix
    """
    seed: int
    read_length: int = 101
    coverages: Tuple[float, ...] = (10.0,)
    snv_rates: Tuple[float, ...] = (0.01,)
    ins_rates: Tuple[float, ...] = (0.05,)
    del_rates: Tuple[float, ...] = (0.05,)
    insert_mean: int = 250
    insert_sd: int = 50
    paired_insert_mean: int = 350
    paired_insert_sd: int = 50
    min_yield: float = 0.9
    max_retries: int = 1000
    correction_modes: Tuple[bool, ...] = (False, True)
    num_runs: int = 1
    workers: int = 1
    region: Optional[ReferenceInterval] = None
    interesting_coverage: float = 20.0
    interesting_snv_rate: float = 0.01
    write_artifacts: bool = True
    output_dir: Path = Path('.')
    string_id: str = 'noid'
    fractions: Tuple[float, ...] = ()
    injector: InjectorSettings = field(default_factory=InjectorSettings)
    correction: CorrectionSettings = field(default_factory=CorrectionSettings)
    assembly: AssemblySettings = field(default_factory=AssemblySettings)
    
    def __post_init__(self):
        if self.read_length <= 0:
            raise ConfigurationError("Read length must be positive")
        for name in ('coverages', 'snv_rates', 'ins_rates', 'del_rates'):
            if not getattr(self, name):
                raise ConfigurationError(f"No values given for {name}")
    
    @classmethod
    def from_config(cls, config: Dict[str, Any], region_spec: Optional[str] = None,
                    require_region: bool = False) -> 'SimulationContext':
        """
        Build a context from a configuration dictionary.
        
        Args:
            config: Merged configuration (see schema.DEFAULT_CONFIG)
            region_spec: Region override; falls back to simulation.region
            require_region: Raise if no region can be resolved
        
        Raises:
            ConfigurationError: On any invalid setting
        """
        errors = validate_config(config)
        if errors:
            raise ConfigurationError("Invalid configuration:\n  " + "\n  ".join(errors))
        
        sim = config['simulation']
        bench = config['benchmark']
        
        spec = region_spec or sim.get('region')
        region = parse_region(spec) if (spec or require_region) else None
        
        return cls(
            seed=resolve_seed(sim.get('seed')),
            read_length=int(sim['read_length']),
            coverages=parse_rate_list(sim['coverages']),
            snv_rates=parse_rate_list(sim['snv_error_rates']),
            ins_rates=parse_rate_list(sim['ins_error_rates']),
            del_rates=parse_rate_list(sim['del_error_rates']),
            insert_mean=int(sim['insert_size_mean']),
            insert_sd=int(sim['insert_size_sd']),
            paired_insert_mean=int(bench.get('paired_insert_mean', 350)),
            paired_insert_sd=int(bench.get('paired_insert_sd', 50)),
            min_yield=float(sim['min_yield']),
            max_retries=int(sim['max_retries']),
            correction_modes=tuple(bool(m) for m in bench['correction_modes']),
            num_runs=int(bench['num_runs']),
            workers=int(bench.get('workers', 1)),
            region=region,
            interesting_coverage=float(bench['interesting_coverage']),
            interesting_snv_rate=float(bench['interesting_snv_rate']),
            write_artifacts=bool(bench.get('write_artifacts', True)),
            output_dir=Path(config['output']['directory']),
            string_id=str(config['output']['string_id']),
            fractions=parse_rate_list(config.get('split', {}).get('fractions')),
            injector=_settings(InjectorSettings, 'injector', config['injector']),
            correction=_settings(CorrectionSettings, 'correction', config['correction']),
            assembly=AssemblySettings(
                command=config['assembler']['command'],
                min_overlap=int(config['assembler']['min_overlap']),
                error_rate_corrected=float(config['assembler']['error_rate_corrected']),
                error_rate_uncorrected=float(config['assembler']['error_rate_uncorrected']),
                aligner_preset=config['aligner']['preset'],
            ),
        )
    
    def describe(self) -> List[str]:
        """Human-readable summary lines, logged at the start of a run."""
        def fmt(values):
            return ', '.join(f"{v:g}" for v in values)
        return [
            f"Seed: {self.seed}",
            f"Region: {self.region if self.region else 'n/a'}",
            f"Read length: {self.read_length}",
            f"Coverages: {fmt(self.coverages)}",
            f"SNV rates: {fmt(self.snv_rates)}",
            f"Ins rates: {fmt(self.ins_rates)}",
            f"Del rates: {fmt(self.del_rates)}",
            f"Insert size: {self.insert_mean}({self.insert_sd})",
        ]
