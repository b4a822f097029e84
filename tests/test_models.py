"""
Tests for the graph data model: node identity and action records.
"""

from sitegraph.models import (
    Action,
    ActionType,
    OptionNode,
    PageNode,
    Transition,
    TransitionNode,
    decode_node_id,
    encode_node_id,
    option_of,
    trigger_of,
)


class TestNodeIdentity:

    def test_page_node_is_its_url(self):
        assert encode_node_id(PageNode("https://example.com/")) == "https://example.com/"

    def test_transition_and_option_ids(self):
        trans = TransitionNode("a", "Menu")
        assert encode_node_id(trans) == "a::TRANS::Menu"
        assert encode_node_id(trans.option("Profile")) == "a::TRANS::Menu::OPT::Profile"

    def test_decode(self):
        assert decode_node_id("https://example.com/x") == PageNode("https://example.com/x")
        assert decode_node_id("a::TRANS::Menu") == TransitionNode("a", "Menu")
        assert decode_node_id("a::TRANS::Menu::OPT::Log out") == OptionNode("a", "Menu", "Log out")

    def test_markers_inside_labels(self):
        opt = OptionNode("a", "Sort", "A::OPT::Z")
        assert decode_node_id(encode_node_id(opt)) == opt
        trans = TransitionNode("a", "x::TRANS::y")
        assert decode_node_id(encode_node_id(trans)) == trans
        # An unescaped option marker in a trigger reads back as an option node
        ambiguous = TransitionNode("a", "Sort::OPT::Asc")
        assert decode_node_id(encode_node_id(ambiguous)) == OptionNode("a", "Sort", "Asc")

    def test_option_knows_its_transition(self):
        opt = OptionNode("a", "Menu", "Profile")
        assert opt.transition == TransitionNode("a", "Menu")
        assert opt.page_url == "a"

    def test_provenance_helpers(self):
        assert trigger_of(PageNode("a")) is None
        assert trigger_of(TransitionNode("a", "Menu")) == "Menu"
        assert option_of(TransitionNode("a", "Menu")) is None
        assert option_of(OptionNode("a", "Menu", "Profile")) == "Profile"

    def test_nodes_are_hashable_and_distinct(self):
        nodes = {PageNode("a"), TransitionNode("a", "Menu"), OptionNode("a", "Menu", "X")}
        assert len(nodes) == 3


class TestAction:

    def test_from_dict_navigate(self):
        a = Action.from_dict({'type': 'navigate', 'label': 'Docs', 'href': '/docs/', 'selector': 'a'})
        assert a.type is ActionType.NAVIGATE
        assert a.href == '/docs/'

    def test_from_dict_unknown_type_is_click(self):
        a = Action.from_dict({'type': 'hover', 'label': 'X', 'href': '/ignored'})
        assert a.type is ActionType.CLICK
        assert a.href is None

    def test_options_become_tuple(self):
        a = Action.from_dict({'type': 'click', 'label': 'Sort', 'options': ['Asc', 'Desc']})
        assert a.options == ('Asc', 'Desc')
        assert len({a, Action.from_dict({'type': 'click', 'label': 'Sort', 'options': ('Asc', 'Desc')})}) == 1

    def test_identity(self):
        a = Action(ActionType.CLICK, 'Save', selector='#save')
        b = Action(ActionType.CLICK, 'Save', selector='#save', options=('x',))
        assert a.identity == b.identity


class TestTransition:

    def test_options_prefer_added(self):
        t = Transition('Menu', added=('Profile', 'Logout', 'Profile'), removed=('Home',))
        assert t.option_labels == ['Profile', 'Logout']

    def test_options_fall_back_to_removed(self):
        t = Transition('Collapse', removed=('A', '', 'B'))
        assert t.option_labels == ['A', 'B']

    def test_no_delta(self):
        assert not Transition('Noop').has_delta
