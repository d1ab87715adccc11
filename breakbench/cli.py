#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Command-line interface for BreakBench.

This module provides the main CLI entry point and the subcommands for
the three run modes (assembly-test, sim-breaks, split-bam) plus
configuration management.
"""

import logging
import sys
from pathlib import Path

import click
import yaml

from .version import __version__
from .config.schema import TEMPLATES, load_config, save_config_template, validate_config
from .config.context import SimulationContext, parse_rate_list, parse_region, resolve_seed
from .exceptions import BreakBenchError, ConfigurationError

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, verbose, quiet):
    """
    BreakBench: simulation and assembly benchmarking for SV/indel callers

    Simulates reads over a mutated genomic interval with ground-truth
    breakpoints and indels, and measures how well a local assembler
    reconstructs the interval across coverage and error-rate sweeps.
    """
    ctx.ensure_object(dict)
    ctx.obj['VERBOSE'] = verbose
    ctx.obj['QUIET'] = quiet


# ============================================================================
# Shared helpers
# ============================================================================

def setup_logging(config, verbose=False, quiet=False):
    """Configure root logging from the output.logging section and -v/-q."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        name = config['output']['logging']['level']
        level = getattr(logging, str(name).upper(), None)
        if not isinstance(level, int):
            raise ConfigurationError(f"Invalid logging level: {name}")

    handlers = [logging.StreamHandler()]
    log_file = config['output']['logging'].get('log_file')
    if log_file:
        log_path = Path(config['output']['directory']) / log_file
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def build_config(config_file, **overrides):
    """
    Load the YAML configuration and apply command-line overrides.

    Overrides are given as 'section.key' -> value; None values are skipped.
    Comma-separated rate lists are parsed here, so a bad list fails before
    any work starts.
    """
    config = load_config(Path(config_file) if config_file else None)
    for dotted, value in overrides.items():
        if value is None:
            continue
        section, key = dotted.split('.', 1)
        config.setdefault(section, {})[key] = value
    return config


def rate_list(value):
    return list(parse_rate_list(value)) if value is not None else None


def fail(message):
    click.echo(f"✗ {message}", err=True)
    sys.exit(1)


def simulation_options(func):
    """Options shared by the simulation modes."""
    options = [
        click.option('--config', 'config_file', type=click.Path(exists=True),
                     help='Configuration file (YAML)'),
        click.option('-c', '--coverage', help='Comma-separated coverages, e.g. 10,20'),
        click.option('-e', '--snv-error-rate', help='Comma-separated per-base SNV error rates'),
        click.option('-I', '--ins-error-rate', help='Comma-separated per-read insertion rates'),
        click.option('-D', '--del-error-rate', help='Comma-separated per-read deletion rates'),
        click.option('-k', '--regions', help='Region as BED file or chr:start-end locus'),
        click.option('-s', '--seed', type=int, help='Random seed (0 = clock)'),
        click.option('-A', '--string-id', help='Prefix for output files'),
        click.option('-o', '--output-dir', type=click.Path(), help='Output directory'),
        click.option('-l', '--read-length', type=int, help='Read length'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def simulation_overrides(coverage, snv_error_rate, ins_error_rate, del_error_rate,
                         seed, string_id, output_dir, read_length):
    return {
        'simulation.coverages': rate_list(coverage),
        'simulation.snv_error_rates': rate_list(snv_error_rate),
        'simulation.ins_error_rates': rate_list(ins_error_rate),
        'simulation.del_error_rates': rate_list(del_error_rate),
        'simulation.seed': seed,
        'simulation.read_length': read_length,
        'output.string_id': string_id,
        'output.directory': output_dir,
    }


# ============================================================================
# Configuration Management Commands
# ============================================================================

@main.group()
def config():
    """Configuration management commands."""
    pass


@config.command('init')
@click.option('--output', '-o', type=click.Path(), default='breakbench_config.yaml',
              help='Output configuration file path')
@click.option('--template', '-t', type=click.Choice(list(TEMPLATES)), default='default',
              help='Configuration template type')
def config_init(output, template):
    """Generate a template configuration file with all available parameters."""
    click.echo(f"Generating {template} configuration template: {output}")
    try:
        save_config_template(Path(output), template=template)
    except (OSError, ConfigurationError) as e:
        fail(f"Error creating configuration: {e}")
    click.echo(f"✓ Configuration file created: {output}")


@config.command('validate')
@click.argument('config_file', type=click.Path(exists=True))
def config_validate(config_file):
    """Validate a configuration file."""
    click.echo(f"Validating configuration file: {config_file}")
    try:
        config = load_config(Path(config_file))
    except ConfigurationError as e:
        fail(str(e))

    errors = validate_config(config)
    if errors:
        click.echo("\n✗ Configuration validation failed:")
        for error in errors:
            click.echo(f"  • {error}", err=True)
        sys.exit(1)

    click.echo("✓ Configuration is valid")
    sim = config['simulation']
    click.echo("\nKey Settings:")
    click.echo(f"  Read length: {sim['read_length']}")
    click.echo(f"  Coverages: {', '.join(f'{c:g}' for c in sim['coverages'])}")
    click.echo(f"  Runs: {config['benchmark']['num_runs']}")


@config.command('show')
@click.argument('config_file', type=click.Path(exists=True))
@click.option('--format', '-f', type=click.Choice(['yaml', 'summary']), default='summary',
              help='Output format')
def config_show(config_file, format):
    """Display configuration settings."""
    try:
        config = load_config(Path(config_file))
    except ConfigurationError as e:
        fail(str(e))

    if format == 'yaml':
        click.echo(yaml.dump(config, default_flow_style=False, sort_keys=False))
        return

    click.echo(f"Configuration from: {config_file}")
    click.echo("=" * 60)
    for section in ('simulation', 'injector', 'correction', 'assembler', 'benchmark'):
        click.echo(f"\n{section}:")
        for key, value in config[section].items():
            click.echo(f"  {key}: {value}")


# ============================================================================
# Run Modes
# ============================================================================

@main.command('assembly-test')
@simulation_options
@click.option('-G', '--reference-genome', type=click.Path(), help='faidx-indexed reference FASTA')
@click.option('-b', '--bam', type=click.Path(exists=True), help='BAM/FASTQ to learn quality strings from')
@click.option('-n', '--num-runs', type=int, help='Number of trials per sweep cell')
@click.option('--workers', type=int, help='Sweep cells to run in parallel')
@click.option('--assembler-cmd', help='Assembler command template, e.g. "fml-asm -l {min_overlap} {reads}"')
@click.pass_context
def assembly_test(ctx, config_file, coverage, snv_error_rate, ins_error_rate, del_error_rate,
                  regions, seed, string_id, output_dir, read_length,
                  reference_genome, bam, num_runs, workers, assembler_cmd):
    """
    Benchmark local assembly over a coverage / error-rate sweep.

    Examples:
        breakbench assembly-test -G hg19.fa -c 10,20 -e 0,0.01 -n 10
    """
    from .benchmark.driver import BenchmarkDriver
    from .external.aligner import MappyAligner
    from .external.assembler import assembler_factory
    from .external.reference import FastaReference
    from .io.io_core_module import QualityPool

    try:
        config = build_config(
            config_file,
            **simulation_overrides(coverage, snv_error_rate, ins_error_rate, del_error_rate,
                                   seed, string_id, output_dir, read_length),
            **{
                'simulation.reference_genome': reference_genome,
                'simulation.quality_bam': bam,
                'benchmark.num_runs': num_runs,
                'benchmark.workers': workers,
                'assembler.command': assembler_cmd,
            },
        )
        setup_logging(config, ctx.obj['VERBOSE'], ctx.obj['QUIET'])

        region_spec = regions or config['simulation'].get('region') or config['benchmark'].get('region')
        context = SimulationContext.from_config(config, region_spec=region_spec, require_region=True)

        genome_path = config['simulation'].get('reference_genome')
        if not genome_path:
            raise ConfigurationError("Must supply a reference genome (-G)")

        logger.info("...loading the reference genome")
        with FastaReference(genome_path) as reference:
            local_ref = reference.fetch(context.region.chrom, context.region.start, context.region.end)

        logger.info("...constructing local_seq index")
        aligner = MappyAligner(local_ref, 'local_ref', preset=context.assembly.aligner_preset)
        pool = QualityPool.from_path(config['simulation'].get('quality_bam'))

        driver = BenchmarkDriver(context, local_ref, aligner,
                                 assembler_factory(context.assembly.command), quality_pool=pool)
        metrics_path = context.output_dir / f"{context.string_id}.assembly.tsv"
        metrics = driver.run(metrics_path=metrics_path)
    except BreakBenchError as e:
        fail(str(e))

    click.echo(f"✓ {len(metrics)} sweep cells written to {metrics_path}")


@main.command('sim-breaks')
@simulation_options
@click.option('-G', '--reference-genome', type=click.Path(), help='faidx-indexed reference FASTA')
@click.option('-b', '--bam', type=click.Path(exists=True), help='BAM/FASTQ to learn quality strings from')
@click.option('-R', '--num-rearrangements', type=int, help='Number of rearrangement breaks')
@click.option('-X', '--num-indels', type=int, help='Approximate number of indels')
@click.option('--isize-mean', type=int, help='Mean insert size of the simulated pairs')
@click.option('--isize-sd', type=int, help='Insert size standard deviation')
@click.pass_context
def sim_breaks(ctx, config_file, coverage, snv_error_rate, ins_error_rate, del_error_rate,
               regions, seed, string_id, output_dir, read_length,
               reference_genome, bam, num_rearrangements, num_indels, isize_mean, isize_sd):
    """
    Simulate rearrangements and indels on a region and sample paired reads.

    Examples:
        breakbench sim-breaks -G hg19.fa -k chr17:7,565,721-7,575,000 -R 10 -X 10 -c 30
    """
    from .benchmark.sim_breaks import simulate_breaks
    from .external.reference import FastaReference
    from .io.io_core_module import QualityPool

    try:
        config = build_config(
            config_file,
            **simulation_overrides(coverage, snv_error_rate, ins_error_rate, del_error_rate,
                                   seed, string_id, output_dir, read_length),
            **{
                'simulation.reference_genome': reference_genome,
                'simulation.quality_bam': bam,
                'simulation.insert_size_mean': isize_mean,
                'simulation.insert_size_sd': isize_sd,
                'injector.num_rearrangements': num_rearrangements,
                'injector.num_indels': num_indels,
            },
        )
        setup_logging(config, ctx.obj['VERBOSE'], ctx.obj['QUIET'])
        context = SimulationContext.from_config(config, region_spec=regions, require_region=True)
        for line in context.describe():
            logger.info(f"  {line}")

        genome_path = config['simulation'].get('reference_genome')
        if not genome_path:
            raise ConfigurationError("Must supply a reference genome (-G)")

        quality_path = config['simulation'].get('quality_bam')
        if quality_path and '.bam' in Path(quality_path).suffixes:
            logger.info("...sampling reads to learn quality scores")
            pool = QualityPool.from_bam(quality_path, regions=QualityPool.training_regions(quality_path))
        else:
            pool = QualityPool.from_path(quality_path)

        with FastaReference(genome_path) as reference:
            result = simulate_breaks(context, reference, quality_pool=pool)
    except BreakBenchError as e:
        fail(str(e))

    click.echo(f"✓ {len(result.genome.breakpoints)} rearrangements, {len(result.genome.indels)} indels, "
               f"{result.num_pairs} read pairs written to {context.output_dir}")


@main.command('split-bam')
@click.option('--config', 'config_file', type=click.Path(exists=True), help='Configuration file (YAML)')
@click.option('-b', '--bam', required=True, type=click.Path(exists=True), help='BAM to split')
@click.option('-f', '--fractions',
              help='Comma-separated fractions summing to at most 1, or a BED of per-region fractions')
@click.option('-k', '--regions', help='Restrict to a region (BED file or locus); needs an index')
@click.option('-s', '--seed', type=int, help='Random seed (0 = clock)')
@click.option('-A', '--string-id', help='Prefix for output files')
@click.option('-o', '--output-dir', type=click.Path(), help='Output directory')
@click.pass_context
def split_bam_command(ctx, config_file, bam, fractions, regions, seed, string_id, output_dir):
    """
    Split a BAM into disjoint, pair-preserving subsets by fraction.

    Writes <string-id><fraction>_subsampled.bam per fraction. Given a BED
    of chrom, start, end, fraction rows instead, writes one
    <string-id>.fractioned.bam keeping each pair with its region's fraction.
    """
    from .simulation.read_splitter import RegionFractions, check_fractions, fractionate_bam, split_bam

    fraction_bed = fractions if fractions and Path(fractions).is_file() else None
    try:
        config = build_config(config_file, **{
            'split.fractions': None if fraction_bed else rate_list(fractions),
            'split.fraction_bed': fraction_bed,
            'simulation.seed': seed,
            'output.string_id': string_id,
            'output.directory': output_dir,
        })
        setup_logging(config, ctx.obj['VERBOSE'], ctx.obj['QUIET'])

        bed_path = fraction_bed or (None if fractions else config['split'].get('fraction_bed'))
        if bed_path:
            region_fractions = RegionFractions.from_bed(bed_path)
        else:
            split_fractions = list(parse_rate_list(config['split']['fractions']))
            check_fractions(split_fractions)
        seed_value = resolve_seed(config['simulation'].get('seed'))
        region_list = [parse_region(regions)] if regions else None

        out = Path(config['output']['directory'])
        out.mkdir(parents=True, exist_ok=True)
        prefix = config['output']['string_id']
        if bed_path:
            output = out / f"{prefix}.fractioned.bam"
            written = fractionate_bam(bam, region_fractions, output, seed_value, region_list)
        else:
            outputs = [out / f"{prefix}{f:g}_subsampled.bam" for f in split_fractions]
            counts = split_bam(bam, split_fractions, outputs, seed_value, region_list)
    except BreakBenchError as e:
        fail(str(e))

    if bed_path:
        click.echo(f"✓ Kept {written:,} records in {output}")
    else:
        click.echo(f"✓ Split {sum(counts):,} records into {len(outputs)} files")


# ============================================================================
# Utility Commands
# ============================================================================

@main.command()
def version():
    """Show version information."""
    click.echo(f"BreakBench v{__version__}")
    click.echo("\nDependencies:")

    try:
        import Bio
        click.echo(f"  BioPython: {Bio.__version__}")
    except ImportError:
        click.echo("  BioPython: not installed")

    try:
        import numpy
        click.echo(f"  NumPy: {numpy.__version__}")
    except ImportError:
        click.echo("  NumPy: not installed")

    try:
        import pysam
        click.echo(f"  pysam: {pysam.__version__}")
    except ImportError:
        click.echo("  pysam: not installed")

    try:
        import mappy
        click.echo(f"  mappy: {getattr(mappy, '__version__', 'installed')}")
    except ImportError:
        click.echo("  mappy: not installed")


if __name__ == '__main__':
    main()
