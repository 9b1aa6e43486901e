"""
Test CLI interface functionality
"""

import subprocess
import sys

import cv2
import yaml


class TestCLIInterface:
    """Test CLI commands"""

    def run_cli_command(self, args, cwd=None):
        """Helper to run CLI command"""
        cmd = [sys.executable, "-m", "cropaug.cli.main"] + args
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            cwd=cwd,
            timeout=60,
        )
        return result

    def test_cli_version(self):
        """Test CLI version command"""
        result = self.run_cli_command(["--version"])
        assert result.returncode == 0
        assert "cropaug" in result.stdout.lower()

    def test_generate_variants(self, sample_image, temp_dir):
        """Test batch generation with statistics report"""
        output_dir = temp_dir / "variants"

        result = self.run_cli_command(
            [
                "generate",
                "-i",
                str(sample_image),
                "-o",
                str(output_dir),
                "-a",
                "10,10,100,50",
                "-n",
                "5",
                "--expansion=-20,30",
                "--aspect-jitter",
                "0.5,2",
                "-w",
                "2",
                "--threads",
                "--seed",
                "1",
                "--stats",
            ]
        )

        assert result.returncode == 0, result.stderr
        variants = sorted(output_dir.glob("variant_*.png"))
        assert len(variants) == 5
        assert variants[0].name == "variant_0000.png"

        report = yaml.safe_load((output_dir / "stats.yaml").read_text())
        assert set(report) == {v.name for v in variants}
        assert len(report["variant_0000.png"]["mean"]) == 3

    def test_generate_doubles_anchor(self, sample_image, temp_dir):
        """Test expansion of 100% doubles the anchor size"""
        output_dir = temp_dir / "doubled"

        result = self.run_cli_command(
            [
                "generate",
                "-i",
                str(sample_image),
                "-o",
                str(output_dir),
                "-a",
                "10,10,100,50",
                "-n",
                "1",
                "-e",
                "100,100",
                "--threads",
            ]
        )

        assert result.returncode == 0, result.stderr
        image = cv2.imread(str(output_dir / "variant_0000.png"), cv2.IMREAD_UNCHANGED)
        assert image.shape[:2] == (100, 200)

    def test_generate_from_config(self, sample_image, temp_dir):
        """Test generation parameters read from YAML"""
        config_path = temp_dir / "augment.yaml"
        config_path.write_text(
            """
generation:
  anchor: [20, 20, 60, 60]
  count: 3
  allow_out_of_bounds: false
  expansion: [0, 40]
processing:
  brightness: 10
"""
        )
        output_dir = temp_dir / "from_config"

        result = self.run_cli_command(
            [
                "generate",
                "-i",
                str(sample_image),
                "-o",
                str(output_dir),
                "--config",
                str(config_path),
                "--threads",
                "--format",
                "jpg",
            ]
        )

        assert result.returncode == 0, result.stderr
        assert len(list(output_dir.glob("variant_*.jpg"))) == 3

    def test_generate_without_anchor(self, sample_image, temp_dir):
        """Test error when no anchor is given"""
        result = self.run_cli_command(
            ["generate", "-i", str(sample_image), "-o", str(temp_dir / "out"), "--threads"]
        )
        assert result.returncode == 1
        assert "anchor" in result.stderr.lower()

    def test_process_image(self, sample_image, temp_dir):
        """Test filter pipeline on a single image"""
        output_path = temp_dir / "processed.png"

        result = self.run_cli_command(
            [
                "process",
                "-i",
                str(sample_image),
                "-o",
                str(output_path),
                "--rotation",
                "90",
                "--flip-h",
                "--blur",
                "1",
            ]
        )

        assert result.returncode == 0, result.stderr
        image = cv2.imread(str(output_path), cv2.IMREAD_UNCHANGED)
        assert image.shape[:2] == (320, 240)

    def test_process_out_of_range(self, sample_image, temp_dir):
        """Test error handling for invalid filter values"""
        result = self.run_cli_command(
            ["process", "-i", str(sample_image), "-o", str(temp_dir / "bad.png"), "--blur", "50"]
        )
        assert result.returncode == 1

    def test_stats_report(self, sample_image, temp_dir):
        """Test statistics report output"""
        report_path = temp_dir / "report.yaml"

        result = self.run_cli_command(["stats", "-i", str(sample_image), "-o", str(report_path)])

        assert result.returncode == 0, result.stderr
        report = yaml.safe_load(report_path.read_text())
        assert report["width"] == 320
        assert report["height"] == 240
        assert len(report["histogram"]["red"]) == 256

    def test_nonexistent_command(self):
        """Test error handling for nonexistent command"""
        result = self.run_cli_command(["nonexistent"])
        assert result.returncode != 0
        assert "invalid choice" in result.stderr.lower()

    def test_missing_required_args(self):
        """Test error handling for missing required arguments"""
        result = self.run_cli_command(["generate"])
        assert result.returncode != 0
        assert "required" in result.stderr.lower()

    def test_generate_skips_empty_variants(self, sample_image, temp_dir):
        """Test expansion below -100% leaves nothing to save but still succeeds"""
        output_dir = temp_dir / "empty"

        result = self.run_cli_command(
            [
                "generate",
                "-i",
                str(sample_image),
                "-o",
                str(output_dir),
                "-a",
                "10,10,100,50",
                "-n",
                "3",
                "--expansion=-150,-120",
                "--threads",
            ]
        )

        assert result.returncode == 0, result.stderr
        assert list(output_dir.glob("variant_*.png")) == []
        assert "skipping" in result.stderr.lower()
