from pathlib import Path

import pytest

from lvsflow.exceptions import ConfigurationError, UnsupportedTechnologyError
from lvsflow.models.lvs import LvsTool
from lvsflow.tech import TechProfile, TechRegistry, default_registry


def test_default_registry_has_sky130():
    registry = default_registry()
    assert registry.supports("sky130", LvsTool.MAGIC_NETGEN)
    assert "sky130" in registry.technologies(LvsTool.MAGIC_NETGEN)

    profile = registry.get("sky130", LvsTool.MAGIC_NETGEN)
    assert profile.magic_tech == "sky130A"


def test_default_registry_is_shared():
    assert default_registry() is default_registry()


def test_sky130_setup_content():
    content = default_registry().get("sky130", LvsTool.MAGIC_NETGEN).setup_content()
    assert "sky130_fd_pr__nfet_01v8" in content
    assert "permute" in content
    assert "property" in content


def test_unknown_technology_is_rejected():
    with pytest.raises(UnsupportedTechnologyError) as excinfo:
        default_registry().get("gf180mcu", LvsTool.MAGIC_NETGEN)
    err = excinfo.value
    assert isinstance(err, ConfigurationError)
    assert err.tech == "gf180mcu"
    assert err.supported == ["sky130"]
    assert "sky130" in str(err)


def test_with_profiles_leaves_base_registry_unchanged():
    base = TechRegistry()
    extended = base.with_profiles(
        TechProfile(name="demo", tool=LvsTool.MAGIC_NETGEN, magic_tech="demo", setup_text="permute default\n")
    )
    assert len(base) == 0
    assert len(extended) == 1
    assert extended.get("demo", LvsTool.MAGIC_NETGEN).setup_content() == "permute default\n"
    assert not base.supports("demo", LvsTool.MAGIC_NETGEN)


def test_profile_without_setup():
    profile = TechProfile(name="bare", tool=LvsTool.MAGIC_NETGEN, magic_tech="bare")
    with pytest.raises(ConfigurationError, match="no comparator setup"):
        profile.setup_content()


def test_profile_missing_resource():
    profile = TechProfile(
        name="ghost", tool=LvsTool.MAGIC_NETGEN, magic_tech="ghost", setup_resource="ghost/setup.tcl"
    )
    with pytest.raises(ConfigurationError, match="missing"):
        profile.setup_content()


def test_rcfile_resolution(tmp_path):
    profile = default_registry().get("sky130", LvsTool.MAGIC_NETGEN)
    assert profile.rcfile(None) is None
    assert profile.rcfile(tmp_path) is None

    rc = tmp_path / "sky130A" / "libs.tech" / "magic" / "sky130A.magicrc"
    rc.parent.mkdir(parents=True)
    rc.write_text("tech load sky130A\n")
    assert profile.rcfile(tmp_path) == rc
