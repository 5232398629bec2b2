"""Tests for the document registrar."""

import frontmatter

import pytest

from liszt.core.config import Settings
from liszt.core.errors import CorruptRecordError, InvalidArgumentError, UnavailableError
from liszt.core.ids import new_id
from liszt.core.types import Building, EntityKind, Resident, Unit
from liszt.storage.documents import DocumentRegistrar
from liszt.storage.registrar import create_registrar


class TestDocumentLayout:
    """Tests for how items are laid out on disk."""
    
    def test_collections_created(self, document_registrar):
        for collection in ["buildings", "units", "residents", ".deleted"]:
            assert (document_registrar.root / collection).is_dir()
    
    def test_unit_document(self, document_registrar, ctx):
        building = document_registrar.register_building(ctx, Building(name="Sunset Towers"))
        unit = document_registrar.register_unit(ctx, Unit(name="4B", building_id=building.id))
        
        path = document_registrar.root / "units" / f"{unit.id}.md"
        assert path.exists()
        
        with open(path, encoding="utf-8") as f:
            post = frontmatter.load(f)
        
        assert post.metadata["type"] == "unit"
        assert post.metadata["id"] == unit.id
        assert post.metadata["name"] == "4B"
        assert post.metadata["building_id"] == building.id
        assert post.content == "# 4B"
    
    def test_stored_item_matches_registered_resident(self, document_registrar, ctx, sample_resident_data):
        registered = document_registrar.register_resident(ctx, Resident(**sample_resident_data))
        
        with open(document_registrar.root / "residents" / f"{registered.id}.md", encoding="utf-8") as f:
            post = frontmatter.load(f)
        
        assert post.metadata["type"] == "resident"
        assert Resident(**{k: v for k, v in post.metadata.items() if k != "type"}) == registered
        assert "Josiah Edward Bartlet" in post.content
    
    def test_numeric_looking_names_stay_strings(self, document_registrar, ctx):
        unit = document_registrar.register_unit(ctx, Unit(name="101"))
        
        assert document_registrar.get_unit_by_name(ctx, "101") == unit
    
    def test_no_temp_files_left(self, document_registrar, ctx):
        document_registrar.register_building(ctx, Building(name="Tidy"))
        
        assert list((document_registrar.root / "buildings").glob("*.tmp")) == []
    
    def test_rejected_text_leaves_no_files(self, document_registrar, ctx):
        with pytest.raises(InvalidArgumentError):
            document_registrar.register_building(ctx, Building(name="bad\ud800"))
        
        directory = document_registrar.root / "buildings"
        assert list(directory.iterdir()) == []
    
    def test_unencodable_write_removes_temp_file(self, document_registrar, ctx):
        building = Building(id=new_id(), name="bad\ud800")
        
        with pytest.raises(InvalidArgumentError):
            document_registrar._write(ctx, EntityKind.BUILDING, building)
        
        assert list((document_registrar.root / "buildings").iterdir()) == []


class TestStrictScans:
    """One bad item fails the whole scan."""
    
    def test_undecodable_item_fails_list(self, document_registrar, ctx):
        good = document_registrar.register_building(ctx, Building(name="Good"))
        bad_path = document_registrar.root / "buildings" / f"{new_id()}.md"
        bad_path.write_text("---\nname: [unclosed\n---\n", encoding="utf-8")
        
        with pytest.raises(CorruptRecordError):
            document_registrar.list_buildings(ctx)
        
        assert document_registrar.get_building_by_id(ctx, good.id) == good
    
    def test_item_without_type_is_corrupt(self, document_registrar, ctx):
        item_id = new_id()
        (document_registrar.root / "units" / f"{item_id}.md").write_text("# Just text\n", encoding="utf-8")
        
        with pytest.raises(CorruptRecordError):
            document_registrar.get_unit_by_id(ctx, item_id)
        with pytest.raises(CorruptRecordError):
            document_registrar.get_unit_by_name(ctx, "anything")
    
    def test_item_with_wrong_id_is_corrupt(self, document_registrar, ctx):
        building = document_registrar.register_building(ctx, Building(name="Moved"))
        source = document_registrar.root / "buildings" / f"{building.id}.md"
        source.rename(source.with_name(f"{new_id()}.md"))
        
        with pytest.raises(CorruptRecordError):
            document_registrar.list_buildings(ctx)
    
    def test_invalid_field_is_corrupt(self, document_registrar, ctx):
        item_id = new_id()
        (document_registrar.root / "residents" / f"{item_id}.md").write_text(
            f"---\ntype: resident\nid: {item_id}\nfirstname: [1, 2]\n---\n",
            encoding="utf-8",
        )
        
        with pytest.raises(CorruptRecordError):
            document_registrar.list_unit_residents(ctx, new_id())
    
    def test_stray_temp_files_are_ignored(self, document_registrar, ctx):
        building = document_registrar.register_building(ctx, Building(name="Real"))
        (document_registrar.root / "buildings" / f".{new_id()}.{new_id()}.tmp").write_text("partial")
        
        assert document_registrar.list_buildings(ctx) == [building]


class TestKeys:
    
    @pytest.mark.parametrize("item_id", ["nonexistent", "1234", "", "../units/x", "01arz3ndektsv4rrffq69g5fav"])
    def test_ids_that_cannot_name_a_document(self, document_registrar, ctx, item_id):
        assert document_registrar.get_building_by_id(ctx, item_id) is None
        assert document_registrar.get_resident_by_id(ctx, item_id) is None
        document_registrar.deregister_unit(ctx, item_id)
    
    def test_unreadable_item_is_unavailable(self, document_registrar, ctx):
        item_id = new_id()
        (document_registrar.root / "buildings" / f"{item_id}.md").mkdir()
        
        with pytest.raises(UnavailableError) as excinfo:
            document_registrar.get_building_by_id(ctx, item_id)
        
        assert not isinstance(excinfo.value, CorruptRecordError)
        assert isinstance(excinfo.value.__cause__, OSError)


class TestSoftDelete:
    
    def test_soft_delete_moves_to_deleted(self, temp_data_dir, ctx):
        registrar = DocumentRegistrar(temp_data_dir, soft_delete=True)
        resident = registrar.register_resident(ctx, Resident(firstname="Donna"))
        
        registrar.deregister_resident(ctx, resident.id)
        registrar.deregister_resident(ctx, resident.id)
        
        assert registrar.get_resident_by_id(ctx, resident.id) is None
        deleted = list((temp_data_dir / ".deleted").glob(f"*_resident_{resident.id}.md"))
        assert len(deleted) == 1
    
    def test_hard_delete_by_default(self, document_registrar, ctx):
        building = document_registrar.register_building(ctx, Building(name="Gone"))
        
        document_registrar.deregister_building(ctx, building.id)
        
        assert list((document_registrar.root / ".deleted").iterdir()) == []
        assert not (document_registrar.root / "buildings" / f"{building.id}.md").exists()


class TestCreateRegistrar:
    
    def test_document_backend(self, temp_data_dir):
        config = Settings(backend="document", data_dir=temp_data_dir, soft_delete=True)
        
        with create_registrar(config) as registrar:
            assert isinstance(registrar, DocumentRegistrar)
            assert registrar.root == temp_data_dir / "documents"
            assert registrar.soft_delete is True
