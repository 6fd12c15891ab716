def surrogatepass(code):
    return code.encode('utf-16', 'surrogatepass').decode('utf-16')

md_memory      = surrogatepass('\udb80\udf5b')
icon_spacer           = '  '
md_alert               = surrogatepass('\udb80\udc26')
