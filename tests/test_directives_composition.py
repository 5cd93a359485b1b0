"""
Composition and stack directive tests

Tests @include, @component/@slot, @section/@yield and @push/@stack.
"""

from bladerunner.lib.compiler import Compiler
from bladerunner.lib.page import PageAssembler
from bladerunner.models.template import CompileOptions, TemplateUnit


def rule(name: str, text: str, path: str = "index.php"):
    compiler = Compiler()
    unit = compiler.relativePath_assign(TemplateUnit(content=text, path=path))
    return compiler.rule_apply(name, unit)


CARD = 'dirname(__FILE__) . "/_includes/card.php"'


class TestInclude:
    """Test @include(name[, vars])"""

    def test_include_without_vars(self):
        result = rule("include", "@include('partials.nav')")
        path = 'dirname(__FILE__) . "/_includes/partials/nav.php"'

        assert result.unit.content == f"<?php if (file_exists({path})) {{ include {path}; }} ?>"

    def test_include_from_nested_page(self):
        """Nested pages reach the includes dir through parent references"""
        result = rule("include", "@include('nav')", path="blog/post/index.php")
        assert 'dirname(__FILE__) . "/../../_includes/nav.php"' in result.unit.content

    def test_include_with_vars(self):
        """Vars are extracted into the included file's scope"""
        result = rule("include", "@include('card', ['title' => $post->title])")
        content = result.unit.content

        assert content.startswith("<?php ob_start();")
        assert f"if (file_exists({CARD})) {{" in content
        assert "extract(['title' => $post->title]);" in content
        assert f"include {CARD}; echo ob_get_clean();" in content
        assert content.endswith("} else { ob_end_clean(); } ?>")

    def test_include_vars_across_lines(self):
        """Multi-line vars are collapsed onto one line"""
        source = "@include('card', [\n    'a' => 1,\n    'b' => f(2)\n])"
        result = rule("include", source)

        assert "extract([ 'a' => 1, 'b' => f(2) ]);" in result.unit.content
        assert "@include" not in result.unit.content

    def test_text_around_include_kept(self):
        result = rule("include", "<header>@include('nav')</header>")
        assert result.unit.content.startswith("<header><?php if (file_exists(")
        assert result.unit.content.endswith("} ?></header>")

    def test_unclosed_include_passes_through(self):
        result = rule("include", "@include('nav'")
        assert result.matched is False

    def test_custom_includes_dir(self):
        compiler = Compiler(CompileOptions(includes_dir="partials"))
        result = compiler.rule_apply("include", TemplateUnit(content="@include('nav')"))
        assert '"/partials/nav.php"' in result.unit.content


class TestComponent:
    """Test @component ... @endcomponent with slots"""

    def test_single_line_slot(self):
        """Single-line slot becomes a $slot property with an empty default"""
        result = rule("component", "@component('card')@slot('title','Hi')Body@endcomponent")

        assert result.unit.content == "\n".join([
            "<?php ob_start(); ?>",
            "<?php $slot = (object) []; ?>",
            "<?php ob_start(); ?>Body<?php $slot->content = ob_get_clean(); ?>",
            '<?php $slot->title = "Hi" ?? ""; ?>',
            f"<?php if (file_exists({CARD})) {{ include {CARD}; echo ob_get_clean(); }} else {{ ob_end_clean(); }} ?>",
        ])

    def test_slot_expression_value(self):
        result = rule("component", "@component('card')\n@slot('title', $post->title)\n@endcomponent")
        assert '<?php $slot->title = $post->title ?? ""; ?>' in result.unit.content

    def test_undecodable_literal_passes_through(self):
        """A value that only looks quoted is emitted verbatim"""
        result = rule("component", "@component('card')@slot('t', \"a\" . $b)@endcomponent")
        assert '<?php $slot->t = "a" . $b ?? ""; ?>' in result.unit.content

    def test_block_slot(self):
        """Block slot bodies are captured separately from the content"""
        source = "@component('alert')\n@slot('footer')\n<b>Note</b>\n@endslot\nText\n@endcomponent"
        content = rule("component", source).unit.content

        assert "<?php ob_start(); ?>\n\nText\n<?php $slot->content = ob_get_clean(); ?>" in content
        assert "<?php ob_start(); ?>\n<b>Note</b>\n<?php $slot->footer = ob_get_clean(); ?>" in content
        assert "@slot" not in content
        assert "@endslot" not in content

    def test_dotted_name(self):
        content = rule("component", "@component('cards.big')x@endcomponent").unit.content
        assert '"/_includes/cards/big.php"' in content

    def test_every_component_rewritten(self):
        """Regions are taken one per pass until none remain"""
        source = "@component('a')A@endcomponent\n@component('b')B@endcomponent"
        content = rule("component", source).unit.content

        assert "@component" not in content
        assert "@endcomponent" not in content
        assert content.count("file_exists(") == 2

    def test_missing_close_passes_through(self):
        result = rule("component", "@component('a') text")
        assert result.matched is False


class TestSectionAndYield:
    """Test @section ... @endsection and @yield"""

    def test_section_moves_to_before(self):
        result = rule("section", "@section('a')\nHi\n@endsection@yield('a')")

        assert result.unit.content == "@yield('a')"
        assert len(result.unit.before) == 1
        assert result.unit.before[0].startswith("<?php ob_start(); ?>")
        assert "\nHi\n" in result.unit.before[0]
        assert result.unit.before[0].endswith('<?php $sections["a"] = ob_get_clean(); ?>')

    def test_sections_kept_in_source_order(self):
        source = "@section('a')1@endsection\n@section('b')2@endsection"
        before = rule("section", source).unit.before

        assert '$sections["a"]' in before[0]
        assert '$sections["b"]' in before[1]

    def test_yield(self):
        result = rule("yield", "@yield('sidebar')")
        assert result.unit.content == '<?php echo $sections["sidebar"] ?? ""; ?>'

    def test_section_body_gets_later_passes(self):
        """Output tags inside a moved section are still rewritten"""
        unit = Compiler().compile("@section('a'){{ $x }}@endsection")

        assert unit.content == ""
        assert 'htmlspecialchars($x ?? ""' in unit.before[0]
        assert "{{" not in unit.before[0]

    def test_section_captured_before_yield_runs(self):
        """A yield placed above its section still sees the captured text"""
        page = PageAssembler().assemble("@yield('a')\n@section('a')Hi@endsection", "index.blade")

        capture = page.text.index('$sections["a"] = ob_get_clean()')
        echo = page.text.index('echo $sections["a"]')
        assert capture < echo


class TestStacks:
    """Test @push and @stack"""

    def test_inline_push(self):
        result = rule("push", "@push('scripts', 'app.js')")
        assert result.unit.content == (
            '<?php $stacks["scripts"] = array_merge(["app.js"], $stacks["scripts"] ?? []); ?>'
        )

    def test_push_stays_in_place(self):
        result = rule("push", "A\n@push('s', 'x')\nB")

        assert result.unit.content.startswith('A\n<?php $stacks["s"]')
        assert result.unit.content.endswith("\nB")
        assert result.unit.before == ()

    def test_pushes_merge_newest_first(self):
        """Each push prepends, so later pushes come out first"""
        content = rule("push", "@push('s', 'x')\n@push('s', 'y')").unit.content

        assert content.index('array_merge(["x"]') < content.index('array_merge(["y"]')
        assert content.count('$stacks["s"] ?? []') == 2

    def test_block_push(self):
        content = rule("push", "@push('scripts')\n<script></script>\n@endpush").unit.content

        assert content == "\n".join([
            "<?php ob_start(); ?>",
            "\n<script></script>\n",
            '<?php $stacks["scripts"] = array_merge([ob_get_clean()], $stacks["scripts"] ?? []); ?>',
        ])

    def test_stack(self):
        result = rule("stack", "@stack('scripts')")
        assert result.unit.content == '<?php echo join("", $stacks["scripts"] ?? []); ?>'
