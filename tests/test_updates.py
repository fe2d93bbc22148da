from dynarouter.core.updates import apply_props, omit, pick


def _add_e(d):
    return {**d, "e": 4}


def test_transform_applies_to_each_sub_map():
    out = apply_props({"$PUT": {"a": 1}, "$ADD": {"b": 2}, "$DELETE": {"c": 3}}, _add_e)
    assert out == {
        "$PUT": {"a": 1, "e": 4},
        "$ADD": {"b": 2, "e": 4},
        "$DELETE": {"c": 3, "e": 4},
    }


def test_absent_sub_maps_are_not_created():
    out = apply_props({"$ADD": {"b": 2}}, _add_e)
    assert out == {"$ADD": {"b": 2, "e": 4}}


def test_flat_update_is_transformed_directly():
    assert apply_props({"a": 1}, _add_e) == {"a": 1, "e": 4}


def test_pick_filters_sub_maps_independently():
    out = apply_props({"$PUT": {"a": 1, "x": 0}, "$ADD": {"b": 2, "a": 5}}, pick(["a", "b"]))
    assert out == {"$PUT": {"a": 1}, "$ADD": {"b": 2, "a": 5}}


def test_omit_never_merges_across_sub_maps():
    out = apply_props({"$PUT": {"a": 1, "b": 2}, "$DELETE": {"c": None}}, omit(["b"]))
    assert out == {"$PUT": {"a": 1}, "$DELETE": {"c": None}}


def test_unknown_top_level_keys_of_an_envelope_are_dropped():
    out = apply_props({"$PUT": {"a": 1}, "stray": 1}, pick(["a"]))
    assert out == {"$PUT": {"a": 1}}


def test_empty_sub_map_still_counts_as_envelope():
    out = apply_props({"$PUT": {}, "a": 1}, pick(["a"]))
    assert out == {"$PUT": {}}
