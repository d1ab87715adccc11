"""
BreakBench v0.1.0

External assembler adapter implementing the AssemblerEngine contract.

The assembler is any executable that reads a FASTA of reads and emits
contigs as FASTA/FASTQ, either to a file or to stdout. The command is a
template; placeholders are filled from the AssemblerConfig:

    {reads}        path of the input reads FASTA
    {output}       path the assembler should write contigs to (optional;
                   without it contigs are parsed from stdout)
    {identifier}   assembly identifier
    {error_rate}   allowed error rate
    {min_overlap}  minimum overlap length
    {read_length}  read length

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import io
import logging
import shlex
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple, Union

from Bio import SeqIO

from ..exceptions import ExternalToolError
from .interfaces import AlignmentRecord, AssemblerConfig, AssemblerEngine, Contig

logger = logging.getLogger(__name__)

DEFAULT_ASSEMBLER_COMMAND = "fml-asm -l {min_overlap} {reads}"


class ExternalTool:
    """Base class for wrapping external command-line tools."""
    
    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        self._check_installation()
    
    def _check_installation(self) -> None:
        """Check if the tool is available in the system's PATH."""
        if not shutil.which(self.tool_name):
            raise ExternalToolError(
                f"Tool '{self.tool_name}' not found in PATH. "
                f"Please ensure it is installed and accessible."
            )
        logger.debug(f"Found external tool: {self.tool_name}")
    
    def run(self, cmd: Sequence[str], check: bool = True) -> Tuple[str, str]:
        """
        Run a command, returning (stdout, stderr).
        
        Raises:
            ExternalToolError: Command missing or exited non-zero
        """
        logger.debug(f"Running command: {' '.join(cmd)}")
        try:
            process = subprocess.run(
                list(cmd),
                check=check,
                capture_output=True,
                text=True,
                encoding='utf-8'
            )
        except FileNotFoundError:
            raise ExternalToolError(f"Command '{cmd[0]}' not found.")
        except subprocess.CalledProcessError as e:
            raise ExternalToolError(
                f"Error executing {self.tool_name}",
                command=cmd,
                returncode=e.returncode,
                stderr=e.stderr
            ) from e
        
        stdout = process.stdout or ""
        stderr = process.stderr or ""
        if stderr:
            logger.debug(f"[{self.tool_name} stderr]\n{stderr.strip()}")
        return stdout, stderr


def parse_contigs(handle) -> List[Contig]:
    """Parse contigs from a FASTA or FASTQ text handle."""
    text = handle.read()
    if not text.strip():
        return []
    fmt = 'fastq' if text.lstrip().startswith('@') else 'fasta'
    return [Contig(rec.id, str(rec.seq).upper()) for rec in SeqIO.parse(io.StringIO(text), fmt)]


class ExternalAssembler(ExternalTool, AssemblerEngine):
    """
    Run a configured assembler command over the read table.
    
    Example:
        engine = ExternalAssembler(AssemblerConfig('test', 0.0, 35, 101),
                                   command="fml-asm -l {min_overlap} {reads}")
        engine.fill_read_table(records)
        engine.perform_assembly()
        contigs = engine.contigs
    """
    
    def __init__(self, config: AssemblerConfig,
                 command: Union[str, Sequence[str]] = DEFAULT_ASSEMBLER_COMMAND):
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        if not self.command:
            raise ExternalToolError("Empty assembler command")
        AssemblerEngine.__init__(self, config)
        ExternalTool.__init__(self, self.command[0])
        self._reads: List[Tuple[str, str]] = []
    
    def fill_read_table(self, records: Iterable[AlignmentRecord]) -> None:
        self._reads = [(r.query_id, r.sequence) for r in records]
    
    def perform_assembly(self) -> None:
        self._contigs = []
        if not self._reads:
            logger.debug(f"[{self.config.identifier}] empty read table, skipping assembly")
            return
        
        with tempfile.TemporaryDirectory(prefix="breakbench_asm_") as tmp:
            tmp_dir = Path(tmp)
            reads_path = tmp_dir / "reads.fa"
            output_path = tmp_dir / "contigs.fa"
            with open(reads_path, 'w') as f:
                for read_id, seq in self._reads:
                    f.write(f">{read_id}\n{seq}\n")
            
            values = {
                'reads': str(reads_path),
                'output': str(output_path),
                'identifier': self.config.identifier,
                'error_rate': self.config.error_rate,
                'min_overlap': self.config.min_overlap,
                'read_length': self.config.read_length,
            }
            cmd = [token.format(**values) for token in self.command]
            writes_file = any('{output}' in token for token in self.command)
            stdout, _ = self.run(cmd)
            
            if writes_file:
                if output_path.exists():
                    with open(output_path) as f:
                        self._contigs = parse_contigs(f)
            else:
                self._contigs = parse_contigs(io.StringIO(stdout))
        
        logger.debug(f"[{self.config.identifier}] assembled {len(self._contigs)} contigs "
                     f"from {len(self._reads)} reads")


def assembler_factory(command: Union[str, Sequence[str]] = DEFAULT_ASSEMBLER_COMMAND):
    """Return a callable building an ExternalAssembler per AssemblerConfig."""
    def build(config: AssemblerConfig) -> ExternalAssembler:
        return ExternalAssembler(config, command=command)
    return build
