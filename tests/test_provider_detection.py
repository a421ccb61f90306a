"""
tests/test_provider_detection.py

Pytest unit tests for provider and region inference.
"""

from __future__ import annotations

import pytest

from detection.provider_detection import (
    CloudProvider,
    DetectionMethod,
    UNKNOWN_REGION,
    detect_provider,
    looks_like_region,
    normalize_region,
    provider_from_instance_type,
    provider_from_region,
)


class TestDetectProvider:
    def test_explicit_provider_wins(self) -> None:
        result = detect_provider(provider="Amazon Web Services", region="Oregon", instance_type="n1-standard-4")

        assert result.provider == CloudProvider.AWS
        assert result.method == DetectionMethod.EXPLICIT
        assert result.confidence == 1.0
        assert result.region == "us-west-2"

    @pytest.mark.parametrize(
        ("raw_provider", "expected"),
        [
            ("aws", CloudProvider.AWS),
            ("GCP", CloudProvider.GCP),
            ("google_cloud", CloudProvider.GCP),
            ("Microsoft Azure", CloudProvider.AZURE),
            ("on-prem", CloudProvider.ON_PREM),
            ("Amazon EC2", CloudProvider.AWS),
            ("Google Compute Engine", CloudProvider.GCP),
            ("Microsoft Azure Virtual Machines", CloudProvider.AZURE),
            ("On-Premise DC", CloudProvider.ON_PREM),
        ],
    )
    def test_explicit_aliases(self, raw_provider: str, expected: str) -> None:
        assert detect_provider(provider=raw_provider).provider == expected

    def test_unrecognized_provider_falls_through_to_instance(self) -> None:
        result = detect_provider(provider="someone else", instance_type="m5.large")

        assert result.provider == CloudProvider.AWS
        assert result.method == DetectionMethod.INSTANCE_PATTERN
        assert result.confidence == pytest.approx(0.85)

    def test_instance_pattern_beats_region_pattern(self) -> None:
        result = detect_provider(instance_type="m5.large", region="europe-west1")

        assert result.provider == CloudProvider.AWS
        assert result.method == DetectionMethod.INSTANCE_PATTERN
        assert result.region == "europe-west1"

    def test_region_pattern(self) -> None:
        result = detect_provider(region="us-east-1a")

        assert result.provider == CloudProvider.AWS
        assert result.method == DetectionMethod.REGION_PATTERN
        assert result.confidence == pytest.approx(0.9)
        assert result.region == "us-east-1"

    def test_gpu_pattern_is_weakest_signal(self) -> None:
        result = detect_provider(gpu_model="Tesla T4")

        assert result.provider == CloudProvider.GCP
        assert result.method == DetectionMethod.GPU_PATTERN
        assert result.confidence == pytest.approx(0.6)

    def test_no_signal_is_unknown(self) -> None:
        result = detect_provider()

        assert result.provider == CloudProvider.UNKNOWN
        assert result.region == UNKNOWN_REGION
        assert result.method == DetectionMethod.FALLBACK
        assert result.confidence == 0.0

    def test_blank_strings_are_no_signal(self) -> None:
        result = detect_provider(provider="  ", region="", instance_type=" ", gpu_model="")
        assert result.method == DetectionMethod.FALLBACK


class TestClassifiers:
    @pytest.mark.parametrize(
        ("instance_type", "expected"),
        [
            ("m5.xlarge", CloudProvider.AWS),
            ("p4d.24xlarge", CloudProvider.AWS),
            ("g4dn.xlarge", CloudProvider.AWS),
            ("n1-standard-4", CloudProvider.GCP),
            ("e2-micro", CloudProvider.GCP),
            ("a2-highgpu-1g", CloudProvider.GCP),
            ("Standard_D4s_v3", CloudProvider.AZURE),
            ("Standard_NC6s_v3", CloudProvider.AZURE),
            ("bare-metal-01", CloudProvider.ON_PREM),
            ("mystery-box", None),
            (None, None),
        ],
    )
    def test_instance_types(self, instance_type: str | None, expected: str | None) -> None:
        assert provider_from_instance_type(instance_type) == expected

    @pytest.mark.parametrize(
        ("region", "expected"),
        [
            ("us-east-1", CloudProvider.AWS),
            ("ap-southeast-2b", CloudProvider.AWS),
            ("europe-west4", CloudProvider.GCP),
            ("us-central1-b", CloudProvider.GCP),
            ("westeurope", CloudProvider.AZURE),
            ("eastus2", CloudProvider.AZURE),
            ("uksouth", CloudProvider.AZURE),
            ("datacenter-7", CloudProvider.ON_PREM),
            ("narnia", None),
        ],
    )
    def test_regions(self, region: str, expected: str | None) -> None:
        assert provider_from_region(region) == expected


class TestRegionHelpers:
    @pytest.mark.parametrize(
        ("raw_region", "provider", "expected"),
        [
            (" US-East-1 ", CloudProvider.AWS, "us-east-1"),
            ("East US 2", CloudProvider.AZURE, "eastus2"),
            ("Iowa", CloudProvider.GCP, "us-central1"),
            ("us-central1-b", CloudProvider.GCP, "us-central1"),
            ("unknown", None, UNKNOWN_REGION),
            ("", CloudProvider.AWS, UNKNOWN_REGION),
            (None, None, UNKNOWN_REGION),
            ("Narnia", None, "narnia"),
        ],
    )
    def test_normalize_region(self, raw_region: str | None, provider: str | None, expected: str) -> None:
        assert normalize_region(raw_region, provider) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("us-east-1", True),
            ("eu-west-2a", True),
            ("asia-south1", True),
            ("eastus2", True),
            ("datacenter-1", False),
            ("m5.large", False),
            ("hello", False),
            ("", False),
            (None, False),
        ],
    )
    def test_looks_like_region(self, value: str | None, expected: bool) -> None:
        assert looks_like_region(value) is expected
