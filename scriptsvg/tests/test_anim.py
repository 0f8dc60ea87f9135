import io
import os
import tempfile
import unittest
from unittest.mock import patch

from lxml import etree

from scriptsvg import anim, config, term
from scriptsvg.timeline import (BackgroundRun, Cell, RowRecorder, TextRun,
                                TimedInterval)

CONFIG_DICT = config.conf_to_dict(config.default_configuration())


def make_configuration(**kwargs):
    return config.make_configuration(CONFIG_DICT, theme='dracula',
                                     geometry=(4, 3), **kwargs)


def make_session():
    blank = [Cell(' ')] * 4
    timeline = RowRecorder()
    timeline.sample([[Cell('a'), Cell('b'), Cell(' ', background='color1'),
                      Cell(' ', background='color1')],
                     blank, blank], 0)
    timeline.sample([[Cell('a'), Cell('b'), Cell(' '), Cell(' ')],
                     [Cell('c', 'color2', bold=True), Cell(' '), Cell('<'),
                      Cell('d', underline=True)],
                     blank], 0.5)
    timeline.finalize(1.5)
    return term.Session(timeline, 1.5)


def children_tags(element):
    return [etree.QName(child).localname for child in element]


def find(root, path):
    return root.find(path, namespaces=anim.NAMESPACES)


def findall(root, path):
    return root.findall(path, namespaces=anim.NAMESPACES)


class TestAnim(unittest.TestCase):
    def test_render_animation_structure(self):
        root = anim.render_animation(make_session(), make_configuration())

        self.assertEqual(etree.QName(root).namespace, anim.SVG_NS)
        self.assertEqual(children_tags(root),
                         ['defs', 'text', 'g', 'g', 'rect', 'rect'])
        background, text = findall(root, 'svg:g')
        self.assertEqual(background.attrib['id'], 'background')
        self.assertEqual(text.attrib['id'], 'text')

        # Loop trigger restarts when the progress bar is full
        trigger = find(root, 'svg:text/svg:set')
        self.assertEqual(trigger.attrib['id'], anim.LOOP_TRIGGER_ID)
        self.assertEqual(trigger.attrib['begin'], '0s; progress.end')

        progress = find(root, 'svg:rect/svg:animate')
        self.assertEqual(progress.attrib['id'], anim.PROGRESS_ID)
        self.assertEqual(progress.attrib['begin'], 'start.begin')
        self.assertEqual(progress.attrib['dur'], '1500ms')
        self.assertEqual(progress.attrib['to'], str(8 * 4))

    def test_render_animation_style(self):
        root = anim.render_animation(make_session(),
                                     make_configuration(font='Monaco'))
        style = find(root, 'svg:defs/svg:style').text
        self.assertIn("font-family: 'Monaco', monospace;", style)
        self.assertIn('.foreground {fill: #f8f8f2}', style)
        self.assertIn('.background {fill: #282a36}', style)
        self.assertIn('.color1 {fill: #ff5555}', style)
        self.assertIn('.color15 {fill: #ffffff}', style)

    def test_render_animation_backgrounds(self):
        root = anim.render_animation(make_session(), make_configuration())
        background = find(root, 'svg:g[@id="background"]')
        frame, row_group = list(background)

        self.assertEqual(frame.attrib['class'], 'background')
        self.assertEqual(frame.attrib['width'], str(8 * 4 + 2))
        self.assertEqual(frame.attrib['height'], str(17 * 3 + 2))

        self.assertEqual(row_group.attrib['display'], 'none')
        rect, set_tag = list(row_group)
        self.assertEqual(rect.attrib['x'], str(1 + 2 * 8))
        self.assertEqual(rect.attrib['y'], '1')
        self.assertEqual(rect.attrib['width'], '16')
        self.assertEqual(rect.attrib['class'], 'color1')
        self.assertEqual(set_tag.attrib['begin'], 'start.begin+0ms')
        self.assertEqual(set_tag.attrib['dur'], '500ms')

    def test_render_animation_text(self):
        root = anim.render_animation(make_session(), make_configuration())
        texts = findall(root, 'svg:g[@id="text"]/svg:text')
        self.assertEqual(len(texts), 2)
        first_row, second_row = texts

        self.assertEqual(first_row.text, 'ab')
        self.assertEqual(first_row.attrib['y'], '1')
        self.assertEqual(first_row.attrib['display'], 'none')
        self.assertEqual(first_row.attrib['textLength'], '16')
        set_tag = find(first_row, 'svg:set')
        self.assertEqual(set_tag.attrib['begin'], 'start.begin+0ms')
        self.assertEqual(set_tag.attrib['dur'], '1500ms')

        self.assertEqual(second_row.attrib['y'], str(1 + 17))
        self.assertIsNone(second_row.text)
        colored, underlined = findall(second_row, 'svg:tspan')
        self.assertEqual(colored.text, 'c ')
        self.assertEqual(colored.attrib['class'], 'color2')
        self.assertEqual(colored.attrib['font-weight'], 'bold')
        self.assertEqual(colored.tail, '<')
        self.assertEqual(underlined.text, 'd')
        self.assertEqual(underlined.attrib['text-decoration'], 'underline')
        self.assertNotIn('font-weight', underlined.attrib)
        set_tag = find(second_row, 'svg:set')
        self.assertEqual(set_tag.attrib['begin'], 'start.begin+500ms')
        self.assertEqual(set_tag.attrib['dur'], '1000ms')

        # Special characters are escaped
        self.assertIn(b'&lt;', etree.tostring(second_row))

    def test_adjacent_intervals_do_not_overlap(self):
        def row(char):
            return [Cell(char), Cell(' '), Cell(' '), Cell(' ')]

        timeline = RowRecorder()
        sample_times = [0.0125, 0.5235, 1.0001, 1.0003, 1.2344999]
        for index, time in enumerate(sample_times):
            timeline.sample([row('abcde'[index]), row(' '), row(' ')], time)
        timeline.finalize(1.5)
        root = anim.render_animation(term.Session(timeline, 1.5),
                                     make_configuration())

        windows = []
        for set_tag in findall(root, 'svg:g[@id="text"]/svg:text/svg:set'):
            begin = int(set_tag.attrib['begin'][len('start.begin+'):-len('ms')])
            duration = int(set_tag.attrib['dur'][:-len('ms')])
            self.assertGreater(duration, 0)
            windows.append((begin, begin + duration))

        # The interval lasting 0.2ms is not rendered
        self.assertEqual(len(windows), 4)
        for (_, end), (begin, _) in zip(windows, windows[1:]):
            self.assertEqual(end, begin)
        self.assertEqual(windows[-1][1], 1500)

    def test_render_row_text_hexadecimal_color(self):
        interval = TimedInterval((TextRun('x', '#123456', False, False),), 1, 2)
        text_tag = anim._render_row_text(2, interval, 8, 17)
        self.assertEqual(find(text_tag, 'svg:tspan').attrib['fill'], '#123456')

    def test_render_row_background_hexadecimal_color(self):
        interval = TimedInterval((BackgroundRun(1, 3, '#abcdef'),), 1, 2)
        group = anim._render_row_background(0, interval, 8, 17)
        rect = find(group, 'svg:rect')
        self.assertEqual(rect.attrib['fill'], '#abcdef')
        self.assertNotIn('class', rect.attrib)

    def test_open_interval(self):
        interval = TimedInterval((TextRun('x', 'foreground', False, False),),
                                 1, None)
        with self.assertRaises(ValueError):
            anim._render_row_text(0, interval, 8, 17)

    def test_advertisement(self):
        with self.subTest(case='no advertisement'):
            root = anim.render_animation(make_session(), make_configuration())
            self.assertIsNone(find(root, 'svg:a'))

        with self.subTest(case='advertisement'):
            configuration = make_configuration(advertisement='Made with love',
                                               advertisement_url='https://example.com')
            root = anim.render_animation(make_session(), configuration)
            self.assertEqual(children_tags(root),
                             ['defs', 'text', 'a', 'g', 'g', 'rect', 'rect'])
            link = find(root, 'svg:a')
            self.assertEqual(link.attrib['{{{}}}href'.format(anim.XLINK_NS)],
                             'https://example.com')
            self.assertEqual(find(link, 'svg:text').text, 'Made with love')

    def test_empty_session(self):
        session = term.Session(RowRecorder(), 1)
        root = anim.render_animation(session, make_configuration())
        self.assertEqual(len(findall(root, 'svg:g[@id="text"]/*')), 0)
        self.assertEqual(len(findall(root, 'svg:g[@id="background"]/*')), 1)

    def test_invalid_duration(self):
        with self.assertRaises(ValueError):
            anim.render_animation(term.Session(RowRecorder(), 0),
                                  make_configuration())

    def test_write_document(self):
        root = anim.render_animation(make_session(), make_configuration())
        with self.subTest(case='file'):
            fd, filename = tempfile.mkstemp(prefix='scriptsvg_', suffix='.svg')
            os.close(fd)
            anim.write_document(root, filename)
            tree = etree.parse(filename)
            self.assertEqual(etree.QName(tree.getroot()).localname, 'svg')
            os.remove(filename)

        with self.subTest(case='standard output'):
            stdout = io.TextIOWrapper(io.BytesIO())
            with patch('sys.stdout', stdout):
                anim.write_document(root, '-')
            document = stdout.buffer.getvalue()
            self.assertTrue(document.startswith(b"<?xml version='1.0'"))
            etree.fromstring(document)
