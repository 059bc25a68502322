"""Unit tests for merging builders."""
from __future__ import annotations

from minerql import QueryBuilder


def _full_select() -> QueryBuilder:
    return (
        QueryBuilder()
        .option("SQL_CALC_FOUND_ROWS")
        .select("u.id")
        .select("u.name", "name")
        .from_("users", "u")
        .join("orders", "o.user_id = u.id", alias="o")
        .where("u.status", "active")
        .open_where("OR")
        .where_in("u.role", ["admin", "owner"])
        .close_where()
        .group_by("u.id")
        .having("spent", 100, ">")
        .order_by("u.name")
        .limit(20, 40)
    )


def test_merge_into_empty_builder_clones():
    source = _full_select()
    clone = source.merge_into(QueryBuilder())
    assert clone.get_statement() == source.get_statement()
    assert clone.get_placeholder_values() == source.get_placeholder_values()


def test_merged_builders_are_independent():
    source = _full_select()
    clone = source.merge_into(QueryBuilder())
    before = source.get_statement()

    source.where("u.age", 30)
    clone.having("visits", 2)

    assert "`u`.`age`" not in clone.get_statement()
    assert "`visits`" not in source.get_statement()
    assert clone.get_statement().startswith(before.split(" HAVING ")[0])


def test_merge_deep_copies_set_values():
    source = QueryBuilder().insert("t").set("data", {"k": 1})
    clone = source.merge_into(QueryBuilder())
    clone.state.assignments[0].value["k"] = 2
    assert source.get_placeholder_values() == [{"k": 1}]


def test_override_limit():
    source = QueryBuilder().select("a").from_("t").limit(10)

    kept = source.merge_into(QueryBuilder().limit(3), override_limit=False)
    assert kept.get_limit() == 3

    replaced = source.merge_into(QueryBuilder().limit(3))
    assert replaced.get_limit() == 10


def test_merge_where_appends_to_existing_criteria():
    target = QueryBuilder().select("*").from_("t").where("b", 2)
    QueryBuilder().where("a", 1).merge_where_into(target)
    assert target.get_where_string() == "WHERE `b` = ? AND `a` = ?"
    assert target.get_placeholder_values() == [2, 1]


def test_merge_update_with_join_skips_order_and_limit():
    source = (
        QueryBuilder()
        .update("u")
        .join("o", "uid")
        .set("x", 1)
        .where("o.y", 2)
        .order_by("id")
        .limit(2)
    )
    clone = source.merge_into(QueryBuilder())
    assert clone.get_statement() == source.get_statement()
    assert clone.get_order_by_string() == ""
    assert clone.get_limit() is None


def test_merge_single_table_delete_keeps_order_and_limit():
    source = QueryBuilder().delete().from_("t").where("a", 1).order_by("a").limit(4)
    clone = source.merge_into(QueryBuilder())
    assert clone.get_statement() == "DELETE FROM `t` WHERE `a` = ? ORDER BY `a` ASC LIMIT 4"


def test_merge_multi_table_delete():
    source = QueryBuilder().delete("a").delete("b").from_("a").join("b", "id").limit(4)
    clone = source.merge_into(QueryBuilder())
    assert clone.get_statement() == source.get_statement()
    assert clone.get_limit() is None


def test_merge_insert_and_replace():
    insert = QueryBuilder().option("IGNORE").insert("t").set("a", 1)
    assert insert.merge_into(QueryBuilder()).get_statement() == "INSERT IGNORE `t` SET `a` = ?"

    replace = QueryBuilder().replace("t").set("a", 1)
    assert replace.merge_into(QueryBuilder()).get_statement() == "REPLACE `t` SET `a` = ?"


def test_merge_select_brings_options():
    target = QueryBuilder().distinct().select("a").merge_select_into(QueryBuilder())
    assert target.get_select_string() == "SELECT DISTINCT `a`"


def test_merge_join_respects_uniqueness():
    target = QueryBuilder().select("*").from_("a").join("b", "x")
    QueryBuilder().join("b", "y").join("c").merge_join_into(target)
    assert target.get_join_string() == "INNER JOIN `b` ON `a`.`x` = `b`.`x` INNER JOIN `c`"


def test_merge_empty_builder_is_a_no_op():
    target = QueryBuilder().select("a").from_("t")
    assert QueryBuilder().merge_into(target) is target
    assert target.get_statement() == "SELECT `a` FROM `t`"


def test_merge_into_self_duplicates_entries():
    qb = QueryBuilder().select("a").from_("t").join("u", "id").where("b", 1).order_by("a")
    assert qb.merge_into(qb) is qb
    assert qb.get_statement() == (
        "SELECT `a` FROM `t` INNER JOIN `u` ON `t`.`id` = `u`.`id` "
        "WHERE `b` = ? AND `b` = ? ORDER BY `a` ASC, `a` ASC"
    )
    assert qb.get_placeholder_values() == [1, 1]


def test_merge_set_into_self():
    qb = QueryBuilder().insert("t").set("a", 1).set("b", "x")
    qb.merge_into(qb)
    assert qb.get_statement() == "INSERT `t` SET `a` = ?, `b` = ?, `a` = ?, `b` = ?"
    assert qb.get_placeholder_values() == [1, "x", 1, "x"]
