from magpie.breadcrumbs import BreadcrumbBuffer
from magpie.utils.testutils import TestCase


class BreadcrumbBufferTest(TestCase):
    def test_record(self):
        buf = BreadcrumbBuffer()
        buf.record(type='foo', data={'bar': 'baz'}, message='aha', category='huhu')

        crumbs = buf.get_buffer()
        assert len(crumbs) == 1
        assert crumbs[0]['type'] == 'foo'
        assert crumbs[0]['data'] == {'bar': 'baz'}
        assert crumbs[0]['message'] == 'aha'
        assert crumbs[0]['category'] == 'huhu'
        assert crumbs[0]['timestamp']

    def test_record_requires_content(self):
        buf = BreadcrumbBuffer()
        with self.assertRaises(ValueError):
            buf.record(category='empty')

    def test_limit(self):
        buf = BreadcrumbBuffer(limit=2)
        for idx in range(5):
            buf.record(message='crumb %d' % idx)

        assert [c['message'] for c in buf.get_buffer()] == ['crumb 3', 'crumb 4']

    def test_zero_limit(self):
        buf = BreadcrumbBuffer(limit=0)
        buf.record(message='dropped')
        assert len(buf) == 0

    def test_repeated_crumbs_are_collapsed(self):
        buf = BreadcrumbBuffer()
        buf.record(message='same', timestamp=1)
        buf.record(message='same', timestamp=2)
        buf.record(message='other', timestamp=3)

        assert [c['message'] for c in buf.get_buffer()] == ['same', 'other']

    def test_processor(self):
        buf = BreadcrumbBuffer()

        def processor(data):
            data['message'] = 'processed'

        buf.record(processor=processor)
        assert buf.get_buffer()[0]['message'] == 'processed'

    def test_failing_processor_drops_crumb(self):
        buf = BreadcrumbBuffer()

        def processor(data):
            raise ValueError('broken')

        buf.record(processor=processor)
        buf.record(message='kept')

        assert [c['message'] for c in buf.get_buffer()] == ['kept']

    def test_copy_is_independent(self):
        buf = BreadcrumbBuffer()
        buf.record(message='first')
        copied = buf.copy()
        copied.record(message='second')

        assert len(buf) == 1
        assert len(copied) == 2
