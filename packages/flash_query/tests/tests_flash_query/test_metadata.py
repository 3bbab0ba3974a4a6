import logging

import pytest
from flash_query import (
    ClauseKind,
    EntityDescriptor,
    MetadataProvider,
    Relation,
    SchemaRegistry,
    UnknownAttributeError,
    UnknownEntityError,
)

from models import articles, metadata


class TestEntityDescriptor:
    def test_from_table_lists_columns_and_default_store(self):
        """Test that from_table() collects column names and the default store."""
        descriptor = EntityDescriptor.from_table(articles)

        assert descriptor.name == "articles"
        assert descriptor.store == "default"
        assert descriptor.attributes == frozenset(
            {"id", "title", "status", "tag", "price", "deleted"}
        )

    def test_column_lookup(self):
        """Test that column() resolves known names and rejects unknown ones."""
        descriptor = EntityDescriptor.from_table(articles)
        assert descriptor.column("title") is articles.c.title
        with pytest.raises(UnknownAttributeError, match="bogus"):
            descriptor.column("bogus")

    def test_compatibility_is_by_store(self):
        """Test that descriptors are compatible exactly when they share a store."""
        main = EntityDescriptor.from_table(articles)
        same_store = EntityDescriptor.from_table(articles, store="default")
        other_store = EntityDescriptor.from_table(articles, store="replica")

        assert main.compatible_with(same_store)
        assert not main.compatible_with(other_store)


class TestSchemaRegistry:
    def test_registry_is_a_metadata_provider(self, registry):
        """Test that SchemaRegistry satisfies the MetadataProvider protocol."""
        assert isinstance(registry, MetadataProvider)

    def test_describe_caches_descriptors(self, registry):
        """Test that describe() returns the same descriptor on each call."""
        assert registry.describe("articles") is registry.describe("articles")

    def test_unknown_entity_raises(self, registry):
        """Test that describing an unregistered entity raises UnknownEntityError."""
        with pytest.raises(UnknownEntityError, match="'missing'"):
            registry.describe("missing")
        with pytest.raises(LookupError):
            registry.relation("missing")

    def test_contains(self, registry):
        """Test that membership reflects the tables in the metadata."""
        assert "articles" in registry
        assert "missing" not in registry

    def test_relation_without_default_scope_is_bare(self, registry):
        """Test that relation() without a default scope is empty and unscoped."""
        relation = registry.relation("articles")

        assert isinstance(relation, Relation)
        assert relation.default_scoped is False
        assert list(relation.clauses.kinds()) == []

    def test_default_scope_applied_and_flagged(self, registry):
        """Test that relation() applies the default scope and sets the flag."""
        registry.default_scope("articles", lambda r: r.where(deleted=False).order("id"))
        relation = registry.relation("articles")

        assert relation.default_scoped is True
        assert len(relation.clauses.get_multi(ClauseKind.WHERE)) == 1
        assert relation.clauses.get_multi(ClauseKind.ORDER) == ("id",)

    def test_unscoped_skips_default_scope(self, registry):
        """Test that unscoped() ignores a registered default scope."""
        registry.default_scope("articles", lambda r: r.limit(1))
        relation = registry.unscoped("articles")

        assert relation.default_scoped is False
        assert not relation.clauses.has_single(ClauseKind.LIMIT)

    def test_default_scope_requires_known_entity(self, registry):
        """Test that a default scope cannot be registered for an unknown entity."""
        with pytest.raises(UnknownEntityError):
            registry.default_scope("missing", lambda r: r)

    def test_merging_scoped_with_unscoped_clears_flag(self, registry):
        """Test that merging in an unscoped relation clears default_scoped."""
        registry.default_scope("articles", lambda r: r.where(deleted=False))
        merged = registry.relation("articles").merge(registry.unscoped("articles"))
        assert merged.default_scoped is False

    def test_relations_are_bound_to_registry_engine(self, bound_registry):
        """Test that relations inherit the registry's executor."""
        relation = bound_registry.relation("articles")
        assert relation.engine is bound_registry.engine

    def test_custom_store_name(self):
        """Test that a registry's store name reaches its descriptors."""
        registry = SchemaRegistry(metadata, store="primary")
        assert registry.describe("articles").store == "primary"

    def test_default_scope_evaluation_is_traced(self, registry, caplog):
        """Records logged while a default scope runs carry the scope name."""
        from flash_query.logging import current_scope

        seen = []

        def scope(relation):
            seen.append(current_scope.get())
            return relation.limit(5)

        registry.default_scope("articles", scope)
        with caplog.at_level(logging.DEBUG, logger="flash_query.metadata"):
            registry.relation("articles")

        assert seen == ["articles.default_scope"]
        assert current_scope.get() is None
        assert "Applying default scope" in caplog.text
