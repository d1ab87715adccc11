"""
BreakBench v0.1.0

Configuration schema for BreakBench.

Defines all available configuration parameters with defaults and validation.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import copy
from typing import Dict, Any, Optional, List
from pathlib import Path
import yaml

from ..exceptions import ConfigurationError


# Default configuration values
DEFAULT_CONFIG = {
    # ========================================================================
    # Simulation (shared by all modes)
    # ========================================================================
    'simulation': {
        'seed': 0,  # 0 = draw a seed from the clock
        'read_length': 101,
        'coverages': [10.0],
        'snv_error_rates': [0.01],  # per base
        'ins_error_rates': [0.05],  # per read
        'del_error_rates': [0.05],  # per read
        'insert_size_mean': 250,
        'insert_size_sd': 50,
        'min_yield': 0.9,  # below this fraction of requested reads, sampling is exhausted
        'max_retries': 1000,  # fragment placement retries per pair
        'region': None,  # BED file or chr:start-end locus
        'reference_genome': None,  # faidx-indexed FASTA
        'quality_bam': None,  # BAM (or FASTQ) to learn quality strings from
    },
    
    # ========================================================================
    # Genome mutation (sim-breaks)
    # ========================================================================
    'injector': {
        'num_rearrangements': 10,
        'num_indels': 10,
        'donor_min_size': 50,
        'donor_max_size': 500,
        'indel_min_size': 1,
        'indel_max_size': 20,
        'padding': 5,  # flank around edited bases that later edits must avoid
        'max_attempts': 10000,
        'max_edit_retries': 100,
    },
    
    # ========================================================================
    # K-mer read correction
    # ========================================================================
    'correction': {
        'k_size': 21,
        'min_kmer_freq': 3,
        'max_corrections': 10,  # per read and pass
        'max_passes': 10,  # refit-and-correct rounds
    },
    
    # ========================================================================
    # External tools
    # ========================================================================
    'assembler': {
        'command': 'fml-asm -l {min_overlap} {reads}',
        'min_overlap': 35,
        'error_rate_corrected': 0.0,
        'error_rate_uncorrected': 0.05,
    },
    'aligner': {
        'preset': 'sr',
    },
    
    # ========================================================================
    # Assembly benchmark
    # ========================================================================
    'benchmark': {
        'num_runs': 100,
        'correction_modes': [False, True],
        'workers': 1,
        'region': 'chr17:7565721-7575000',  # default local interval (9,280 bp)
        'paired_insert_mean': 350,
        'paired_insert_sd': 50,
        'interesting_coverage': 20.0,
        'interesting_snv_rate': 0.01,
        'write_artifacts': True,
    },
    
    # ========================================================================
    # Split BAM
    # ========================================================================
    'split': {
        'fractions': [],
        'fraction_bed': None,  # BED of chrom, start, end, fraction rows
    },
    
    # ========================================================================
    # Output
    # ========================================================================
    'output': {
        'directory': '.',
        'string_id': 'noid',
        'logging': {
            'level': 'INFO',
            'log_file': None,
        },
    },
}

TEMPLATES = ('default', 'quick')


def load_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from file or return defaults.
    
    Args:
        config_file: Path to YAML configuration file
    
    Returns:
        Configuration dictionary (defaults deep-merged with user values)
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    
    if config_file:
        config_file = Path(config_file)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_file}")
        try:
            with open(config_file, 'r') as f:
                user_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file {config_file}: {e}") from e
        
        if user_config:
            if not isinstance(user_config, dict):
                raise ConfigurationError(f"Config file {config_file} must contain a mapping")
            config = _deep_merge(config, user_config)
    
    return config


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries.
    
    Args:
        base: Base dictionary
        override: Override dictionary
    
    Returns:
        Merged dictionary
    """
    result = base.copy()
    
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    
    return result


def save_config_template(output_path: Path, template: str = 'default'):
    """
    Save a configuration template to file.
    
    Args:
        output_path: Output file path
        template: Template type ('default' or 'quick')
    """
    if template not in TEMPLATES:
        raise ConfigurationError(f"Unknown template '{template}'. Choose from: {', '.join(TEMPLATES)}")
    
    config = copy.deepcopy(DEFAULT_CONFIG)
    
    if template == 'quick':
        # small sweep for smoke-testing an assembler install
        config['benchmark']['num_runs'] = 2
        config['benchmark']['correction_modes'] = [True]
        config['simulation']['coverages'] = [20.0]
    
    with open(output_path, 'w') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration dictionary.
    
    Args:
        config: Configuration to validate
    
    Returns:
        List of validation errors (empty if valid)
    """
    errors = []
    sim = config.get('simulation', {})
    
    if int(sim.get('read_length', 0)) <= 0:
        errors.append("simulation.read_length must be positive")
    
    for key in ('coverages', 'snv_error_rates', 'ins_error_rates', 'del_error_rates'):
        values = sim.get(key) or []
        if not isinstance(values, (list, tuple)) or not values:
            errors.append(f"simulation.{key} must be a non-empty list")
            continue
        for value in values:
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                errors.append(f"simulation.{key}: '{value}' is not a number")
            elif value < 0:
                errors.append(f"simulation.{key}: {value} is negative")
            elif key != 'coverages' and value > 1:
                errors.append(f"simulation.{key}: {value} is not a probability")
    
    if sim.get('insert_size_sd', 0) < 0:
        errors.append("simulation.insert_size_sd must be >= 0")
    if not 0 <= sim.get('min_yield', 0) <= 1:
        errors.append("simulation.min_yield must be in [0, 1]")
    
    inj = config.get('injector', {})
    if inj.get('num_rearrangements', 0) < 0 or inj.get('num_indels', 0) < 0:
        errors.append("injector edit counts must be >= 0")
    if inj.get('donor_min_size', 1) > inj.get('donor_max_size', 1):
        errors.append("injector.donor_min_size exceeds donor_max_size")
    if inj.get('indel_min_size', 1) < 1 or inj.get('indel_min_size', 1) > inj.get('indel_max_size', 1):
        errors.append("injector indel size range must satisfy 1 <= min <= max")
    
    corr = config.get('correction', {})
    if corr.get('k_size', 0) < 1:
        errors.append("correction.k_size must be positive")
    if corr.get('min_kmer_freq', 0) < 1:
        errors.append("correction.min_kmer_freq must be >= 1")
    if corr.get('max_passes', 1) < 1:
        errors.append("correction.max_passes must be >= 1")
    
    bench = config.get('benchmark', {})
    if bench.get('num_runs', 0) < 1:
        errors.append("benchmark.num_runs must be >= 1")
    if bench.get('workers', 1) < 1:
        errors.append("benchmark.workers must be >= 1")
    if not bench.get('correction_modes'):
        errors.append("benchmark.correction_modes must list at least one mode")
    
    fractions = config.get('split', {}).get('fractions') or []
    if any(f < 0 for f in fractions) or sum(fractions) > 1 + 1e-9:
        errors.append("split.fractions must be non-negative and sum to <= 1")
    
    level = config.get('output', {}).get('logging', {}).get('level', 'INFO')
    if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
        errors.append(f"Invalid logging level: {level}")
    
    return errors
